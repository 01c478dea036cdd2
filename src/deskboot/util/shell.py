from __future__ import annotations

"""Shell command execution.

CONTRACT
- Inputs: Command (str or argv list), cwd, env, timeout
- Outputs (required):
  - CmdResult(cmd, returncode, stdout, stderr, elapsed_s)
- Invariants:
  - str commands run with shell=True, list commands with shell=False
  - run_cmd() never raises for non-zero exit, timeout or missing binary
  - Logged command lines are redacted
- Failure:
  - check_cmd() raises CommandFailed on non-zero exit
"""

import os
import shlex
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from .redaction import Redactor

TIMEOUT_RC = 124
NOT_FOUND_RC = 127


def which(cmd: str) -> str | None:
    for p in os.environ.get("PATH", "").split(os.pathsep):
        if not p:
            continue
        candidate = Path(p) / cmd
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)
    return None


@dataclass(frozen=True)
class CmdResult:
    cmd: str
    returncode: int
    stdout: str
    stderr: str
    elapsed_s: float

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _display(cmd: str | list[str]) -> str:
    text = cmd if isinstance(cmd, str) else shlex.join(cmd)
    return Redactor().redact(text)


def run_cmd(
    cmd: str | list[str],
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
    timeout_s: float | None = None,
    input_text: str | None = None,
) -> CmdResult:
    """Run a command and capture its output.

    CONTRACT:
    - Accepts cmd as str (run with shell=True) or list[str] (run with shell=False).
    - Never raises for non-zero exit; caller inspects return code.
    - Timeouts map to rc=124, a missing executable to rc=127.
    """
    shown = _display(cmd)
    use_shell = isinstance(cmd, str)
    logger.debug(f"$ {shown}")

    start_t = time.time()
    try:
        p = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            shell=use_shell,
            env=(os.environ | env) if env else None,
            input=input_text,
            capture_output=True,
            timeout=timeout_s,
            text=True,
        )
        rc, out, err = p.returncode, p.stdout or "", p.stderr or ""
    except subprocess.TimeoutExpired as e:
        rc = TIMEOUT_RC
        out = e.stdout.decode(errors="replace") if isinstance(e.stdout, bytes) else (e.stdout or "")
        err = "Timeout expired."
    except FileNotFoundError as e:
        rc, out, err = NOT_FOUND_RC, "", str(e)
    except OSError as e:
        rc, out, err = 1, "", f"Exception: {e}"
    elapsed = time.time() - start_t

    if rc != 0:
        logger.debug(f"exit {rc} after {elapsed:.1f}s: {shown}")

    return CmdResult(cmd=shown, returncode=rc, stdout=out, stderr=err, elapsed_s=elapsed)


def check_cmd(
    cmd: str | list[str],
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
    timeout_s: float | None = None,
    input_text: str | None = None,
) -> CmdResult:
    """Like run_cmd but raises CommandFailed on a non-zero exit."""
    from ..errors import CommandFailed

    res = run_cmd(cmd, cwd=cwd, env=env, timeout_s=timeout_s, input_text=input_text)
    if res.returncode != 0:
        raise CommandFailed(res.cmd, res.returncode, res.stderr)
    return res


def sudo(*argv: str) -> list[str]:
    return ["sudo", *argv]


if __name__ == "__main__":
    import argparse
    import sys

    parser = argparse.ArgumentParser(description="Run a shell command and show captured output")
    parser.add_argument("--cmd", required=True, help="Command to run")
    parser.add_argument("--cwd", default=".", help="Working directory")
    parser.add_argument("--timeout", type=int, default=10, help="Timeout in seconds")
    args = parser.parse_args()

    res = run_cmd(args.cmd, cwd=Path(args.cwd), timeout_s=args.timeout)
    print(f"Exit code: {res.returncode}")
    print(f"Stdout: {res.stdout}")
    print(f"Stderr: {res.stderr}")
    sys.exit(res.returncode)
