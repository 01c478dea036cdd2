from __future__ import annotations

"""APT helpers shared by the package-installing steps.

CONTRACT
- Inputs: package names
- Outputs:
  - apt-get invocations through sudo with a non-interactive frontend
- Invariants:
  - Installs are idempotent at the apt level (`install -y` on an installed package is a no-op)
- Failure:
  - Raises CommandFailed on non-zero exit
"""

from typing import Iterable

from ..util.shell import CmdResult, check_cmd, run_cmd

APT_ENV = "DEBIAN_FRONTEND=noninteractive"


def apt_get(*args: str) -> list[str]:
    # sudo drops the caller's environment, so the frontend goes on the command line.
    return ["sudo", APT_ENV, "apt-get", *args]


def apt_update() -> CmdResult:
    return check_cmd(apt_get("update", "-y"))


def apt_upgrade() -> CmdResult:
    return check_cmd(apt_get("upgrade", "-y"))


def apt_install(packages: Iterable[str]) -> CmdResult:
    return check_cmd(apt_get("install", "-y", *packages))


def apt_purge(packages: Iterable[str]) -> CmdResult:
    """Best effort: purging a package that is not installed is not an error here."""
    return run_cmd(apt_get("purge", "-y", *packages))


def apt_remove(packages: Iterable[str]) -> CmdResult:
    return run_cmd(apt_get("remove", "-y", *packages))


def autoremove_candidates() -> list[str] | None:
    """Packages `apt-get autoremove` would remove, or None when apt cannot tell."""
    res = run_cmd(["apt-get", "-s", "autoremove"], timeout_s=60)
    if not res.ok:
        return None
    return [line.split()[1] for line in res.stdout.splitlines() if line.startswith("Remv ")]
