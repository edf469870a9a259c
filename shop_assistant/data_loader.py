from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def load_text(path: Path) -> str:
    """Purpose: Load a data file as UTF-8 text and strip BOM if present.
    Inputs/Outputs: Input is a Path to the file; output is the decoded string.
    Side Effects / State: None; pure function reading the filesystem.
    Dependencies: Uses Path.read_text/read_bytes; used by load_json_document.
    Failure Modes: UnicodeDecodeError triggers a fallback decode with errors ignored,
        which can drop invalid bytes. Missing files raise OSError to the caller.
    If Removed: Catalog and canned-response files cannot be read.
    Testing Notes: Validate BOM-stripping and fallback decoding on non-UTF8 files.
    """
    # Read as UTF-8 and fall back to a tolerant decode if needed.
    try:
        return path.read_text(encoding="utf-8").lstrip("\ufeff")
    except UnicodeDecodeError:
        raw = path.read_bytes()
        text = raw.decode("utf-8", errors="ignore")
        return text.lstrip("\ufeff")


def load_json_document(path: Path) -> Any:
    """Parse a JSON data file; OSError and json.JSONDecodeError propagate."""
    return json.loads(load_text(path))
