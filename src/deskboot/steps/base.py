from __future__ import annotations

"""Step value type.

CONTRACT
- Inputs: name, check predicate, apply action, fatal flag
- Outputs:
  - Step (frozen dataclass), Outcome enum
- Invariants:
  - check() returns True when the desired end-state already holds
  - apply() establishes the end-state or raises; calling it when check()
    already holds is a no-op or a harmless re-assertion
  - fatal decides whether a failure aborts the whole run
- Failure:
  - Step names are validated on construction (ValueError)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from ..errors import StepFailed
from ..util.ids import validate_step_name


class Outcome(str, Enum):
    APPLIED = "applied"
    SATISFIED = "already-satisfied"
    WARNED = "warned"
    FAILED = "failed"


@dataclass(frozen=True)
class Step:
    name: str
    check: Callable[[], bool]
    apply: Callable[[], None]
    fatal: bool = False
    description: str = ""

    def __post_init__(self) -> None:
        validate_step_name(self.name)


def refuse(message: str) -> Callable[[], None]:
    """Apply action for conditions the tool cannot fix on its own."""
    def _apply() -> None:
        raise StepFailed(message)

    return _apply
