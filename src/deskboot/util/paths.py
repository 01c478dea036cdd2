from __future__ import annotations

"""Path utilities.

CONTRACT
- Inputs: paths, lines of text, template names
- Outputs:
  - ensure_dir() creates directory tree
  - ensure_line() appends a line to a file unless a marker is already present
  - ensure_symlink() points link at target
  - copy_template() writes bundled resource to dest
- Invariants:
  - Every helper is idempotent: a second call with the same arguments changes nothing
  - copy_template never overwrites existing files (unless `overwrite=True`)
- Failure:
  - Raises OSError on permission problems; copy_template raises if resource missing
"""

import importlib.resources
import os
from pathlib import Path

from .text import file_contains


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def ensure_line(path: Path, line: str, marker: str | None = None) -> bool:
    """Append `line` to `path` unless `marker` (default: the line) already occurs.

    Returns True when the file was changed.
    """
    if file_contains(path, marker or line):
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    existing = path.read_text(encoding="utf-8") if path.exists() else ""
    prefix = "" if not existing or existing.endswith("\n") else "\n"
    with path.open("a", encoding="utf-8") as f:
        f.write(prefix + line.rstrip("\n") + "\n")
    return True


def ensure_symlink(target: Path, link: Path) -> bool:
    """Make `link` a symlink to `target`. Returns True when the link was (re)created."""
    if link.is_symlink() and Path(os.readlink(link)) == target:
        return False
    link.parent.mkdir(parents=True, exist_ok=True)
    if link.is_symlink() or link.exists():
        link.unlink()
    link.symlink_to(target)
    return True


def copy_template(template_name: str, dest: Path, overwrite: bool = False) -> bool:
    # Only write if missing (avoid clobber) unless forced.
    if dest.exists() and not overwrite:
        return False
    resource = importlib.resources.files("deskboot") / "templates" / template_name
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(resource.read_text(encoding="utf-8"), encoding="utf-8")
    return True
