"""Narrative turn engine: observe, think, act and resolve, one node at a time."""
