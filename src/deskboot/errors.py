from __future__ import annotations

"""Error types.

CONTRACT
- Inputs: failure context from apply actions and the runner
- Outputs:
  - BootstrapError hierarchy
- Invariants:
  - CommandFailed never carries unredacted credentials
  - Aborted always names the 1-based index and step name
- Failure:
  - n/a
"""

from .util.redaction import Redactor


class BootstrapError(RuntimeError):
    pass


class StepFailed(BootstrapError):
    """An apply action detected a condition it cannot converge."""


class CommandFailed(StepFailed):
    def __init__(self, cmd: str, returncode: int, stderr: str = "") -> None:
        r = Redactor()
        self.cmd = r.redact(cmd)
        self.returncode = returncode
        self.stderr_tail = r.redact(_tail(stderr))
        msg = f"`{self.cmd}` exited with {returncode}"
        if self.stderr_tail:
            msg += f": {self.stderr_tail}"
        super().__init__(msg)


class Aborted(BootstrapError):
    def __init__(self, index: int, name: str, cause: BaseException) -> None:
        self.index = index
        self.name = name
        self.cause = cause
        super().__init__(f"aborted at step {index} ({name}): {cause}")


def _tail(text: str, lines: int = 3) -> str:
    parts = [ln for ln in text.strip().splitlines() if ln.strip()]
    return " | ".join(parts[-lines:])
