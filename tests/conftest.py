import json
import sys
from pathlib import Path

# Ensure repository root is on sys.path so tests can import top-level modules
ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

import pytest


@pytest.fixture
def acronyms():
    import swimc
    return swimc.DEFAULT_ACRONYMS


@pytest.fixture
def write_practice(tmp_path):
    def _write(sections, name="practice.json", **meta):
        fp = tmp_path / name
        fp.write_text(json.dumps({"sections": sections, **meta}))
        return fp
    return _write
