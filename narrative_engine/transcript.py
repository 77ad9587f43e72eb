"""Transcript buffer: append-only narration blocks rendered as wrapped lines.

Blocks for the current node are "live": their lines carry keywords and action
indices. `freeze_to_history()` turns every live line into a read-only history
line when the engine leaves a node. History survives until `clear()`.

Line rendering is a pure function of the live blocks (`render_blocks`); the
buffer caches its output and rebuilds it when a block is appended.
"""

from __future__ import annotations

import logging

from narrative_engine.models import BlockKind, LineKind, NarrationBlock, TranscriptLine

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 91
CONTINUATION_INDENT = "  "
SEPARATOR_CHAR = "─"


def _split_word(word: str, width: int) -> list[str]:
    return [word[i:i + width] for i in range(0, len(word), width)]


def wrap_text(text: str, width: int, first_width: int | None = None) -> list[str]:
    """Word-wrap `text`, keeping blank lines between paragraphs.

    Words longer than the available width are split across lines. When
    `first_width` is given the very first line is wrapped to it instead.
    """
    if width < 1:
        raise ValueError("width must be positive")
    if not text:
        return [""]

    lines: list[str] = []

    def limit() -> int:
        return first_width if (first_width is not None and not lines) else width

    for paragraph in text.replace("\r\n", "\n").split("\n"):
        if not paragraph.strip():
            lines.append("")
            continue
        current = ""
        for word in paragraph.split():
            candidate = f"{current} {word}" if current else word
            if len(candidate) <= limit():
                current = candidate
                continue
            if current:
                lines.append(current)
                current = ""
            while len(word) > limit():
                chunk = _split_word(word, limit())[0]
                lines.append(chunk)
                word = word[len(chunk):]
            current = word
        if current:
            lines.append(current)
    return lines


def render_blocks(blocks: list[NarrationBlock], width: int) -> list[TranscriptLine]:
    """Flatten live blocks into lines. Action indices count up across all blocks."""
    lines: list[TranscriptLine] = []
    action_index = 0

    def add(text: str, kind: LineKind, block: NarrationBlock, **extra) -> None:
        lines.append(TranscriptLine(text=text, kind=kind, block_kind=block.kind, **extra))

    for block in blocks:
        if block.skill:
            add(f"[{block.skill.upper()}]", LineKind.HEADER, block)
            add("", LineKind.EMPTY, block)

        content_kind = LineKind.OUTCOME if block.kind == BlockKind.OUTCOME else LineKind.CONTENT
        for text in wrap_text(block.text, width):
            if text:
                add(text, content_kind, block, keywords=block.keywords)
            else:
                add("", LineKind.EMPTY, block)
        add("", LineKind.EMPTY, block)

        if block.actions:
            continuation = width - len(CONTINUATION_INDENT)
            for action in block.actions:
                prefix = action.prefix
                wrapped = wrap_text(action.text, continuation, first_width=max(1, width - len(prefix)))
                for i, text in enumerate(wrapped):
                    shown = prefix + text if i == 0 else CONTINUATION_INDENT + text
                    add(shown, LineKind.ACTION, block, action_index=action_index)
                action_index += 1
            add("", LineKind.EMPTY, block)
    return lines


class TranscriptBuffer:
    def __init__(self, width: int = DEFAULT_WIDTH) -> None:
        self.width = width
        self._blocks: list[NarrationBlock] = []
        self._history: list[TranscriptLine] = []
        self._live_cache: list[TranscriptLine] = []
        self._dirty = False
        self.scroll_offset = 0

    # ── Blocks ───────────────────────────────────────────

    @property
    def blocks(self) -> tuple[NarrationBlock, ...]:
        return tuple(self._blocks)

    def append(self, block: NarrationBlock) -> None:
        self._blocks.append(block)
        self._dirty = True

    def extend(self, blocks: list[NarrationBlock]) -> None:
        for block in blocks:
            self.append(block)

    # ── Lines ────────────────────────────────────────────

    def _live_lines(self) -> list[TranscriptLine]:
        if self._dirty:
            self._live_cache = render_blocks(self._blocks, self.width)
            self._dirty = False
        return self._live_cache

    @property
    def lines(self) -> list[TranscriptLine]:
        return self._history + self._live_lines()

    @property
    def history_line_count(self) -> int:
        return len(self._history)

    @property
    def live_line_count(self) -> int:
        return len(self._live_lines())

    @property
    def total_lines(self) -> int:
        return len(self._history) + len(self._live_lines())

    @property
    def action_count(self) -> int:
        return sum(len(b.actions or ()) for b in self._blocks)

    # ── History ──────────────────────────────────────────

    def freeze_to_history(self) -> None:
        """Turn live lines into history, then add a separator and a spacer.

        The scroll offset moves to `len(history)`: one past the last line
        until the next node's first block is appended, after which it points
        at that block's header. Does nothing when there are no live blocks.
        """
        if not self._blocks:
            return
        frozen = [
            line.model_copy(update={"is_history": True, "keywords": None, "action_index": None})
            for line in self._live_lines()
        ]
        self._history.extend(frozen)
        self._history.append(
            TranscriptLine(text=SEPARATOR_CHAR * self.width, kind=LineKind.SEPARATOR, is_history=True)
        )
        self._history.append(TranscriptLine(text="", kind=LineKind.EMPTY, is_history=True))
        self._blocks.clear()
        self._live_cache = []
        self._dirty = False
        self.scroll_offset = len(self._history)
        logger.debug("froze %d lines to history (%d total)", len(frozen), len(self._history))

    def clear(self) -> None:
        self._blocks.clear()
        self._history.clear()
        self._live_cache = []
        self._dirty = False
        self.scroll_offset = 0

    # ── Scrolling ────────────────────────────────────────

    def _max_offset(self) -> int:
        return max(0, self.total_lines - 1)

    def scroll_up(self, lines: int = 1) -> None:
        self.scroll_offset = max(0, self.scroll_offset - lines)

    def scroll_down(self, lines: int = 1) -> None:
        # never pulls back an offset parked past the end by freeze_to_history
        if self.scroll_offset < self._max_offset():
            self.scroll_offset = min(self._max_offset(), self.scroll_offset + lines)

    def scroll_to_bottom(self, viewport: int) -> None:
        self.scroll_offset = max(0, self.total_lines - viewport)

    def can_scroll_up(self) -> bool:
        return self.scroll_offset > 0

    def can_scroll_down(self, viewport: int) -> bool:
        return self.scroll_offset + viewport < self.total_lines

    def visible_lines(self, count: int) -> list[TranscriptLine]:
        lines = self.lines
        start = min(self.scroll_offset, max(0, len(lines) - 1))
        return lines[start:start + count]
