from __future__ import annotations

"""Text IO utilities.

CONTRACT
- Inputs: Path
- Outputs:
  - File content as string, or a containment answer
- Invariants:
  - Reads as utf-8
  - file_contains() treats a missing file as not containing anything
- Failure:
  - read_text_file raises FileNotFoundError/IOError
"""

from pathlib import Path


def read_text_file(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def file_contains(path: Path, needle: str) -> bool:
    if not path.is_file():
        return False
    return needle in path.read_text(encoding="utf-8", errors="ignore")
