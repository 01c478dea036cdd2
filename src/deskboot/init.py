from __future__ import annotations

"""Template initializer.

CONTRACT
- Inputs: destination directory
- Outputs (required):
  - Writes deskboot.yaml
- Invariants:
  - Creates the destination directory if missing
  - Does not overwrite an existing file (by default)
- Failure:
  - Raises OSError on permission issues
"""

from pathlib import Path

from .config import DEFAULT_CONFIG_NAME
from .util.paths import copy_template, ensure_dir


def write_template(dest_dir: Path, force: bool = False) -> tuple[Path, bool]:
    ensure_dir(dest_dir)
    dest = dest_dir / DEFAULT_CONFIG_NAME
    return dest, copy_template(DEFAULT_CONFIG_NAME, dest, overwrite=force)
