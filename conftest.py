import os
import shutil
from pathlib import Path

import pytest

SCRATCH_DIR = Path("data-tests")

# Importing narrative_engine.app builds the default app; keep it out of ./data
os.environ.setdefault("DATA_DIR", str(SCRATCH_DIR.resolve()))


@pytest.fixture(autouse=True)
def fresh_config():
    """Every test starts from an empty config in data-tests/."""
    from narrative_engine import config

    shutil.rmtree(SCRATCH_DIR, ignore_errors=True)
    config.init_config(SCRATCH_DIR)
    yield
