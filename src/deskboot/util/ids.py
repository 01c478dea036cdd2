from __future__ import annotations

"""Step name validation.

CONTRACT
- Inputs: Step names, lists of step names
- Outputs (required):
  - validate_step_name() returns the validated name or raises
  - ensure_unique() returns the names unchanged or raises
- Invariants:
  - Step names match `[a-z0-9][a-z0-9_.-]{0,63}`
  - Names are unique within one step list
- Failure:
  - Raises ValueError on invalid or duplicate names
"""

import re
from typing import Iterable

_STEP_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9_.-]{0,63}$")


def validate_step_name(name: str) -> str:
    if not _STEP_NAME_RE.fullmatch(name):
        raise ValueError(
            f"Invalid step name {name!r}. Use 1-64 chars: lowercase letters/digits, plus '._-'. "
            "Must start with a letter or digit."
        )
    return name


def ensure_unique(names: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for n in names:
        if n in seen:
            raise ValueError(f"Duplicate step name: {n}")
        seen.add(n)
        out.append(n)
    return out


if __name__ == "__main__":
    import argparse
    import sys

    parser = argparse.ArgumentParser(description="Validate step names")
    parser.add_argument("names", nargs="+", help="Step names to validate")
    args = parser.parse_args()

    try:
        for n in ensure_unique(validate_step_name(n) for n in args.names):
            print(n)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
