from __future__ import annotations

"""Live machine-state probes.

CONTRACT
- Inputs: package names, unit names, settings keys, user/group names
- Outputs:
  - Booleans or small strings describing the current machine state
- Invariants:
  - Read-only: no probe changes the machine
  - Nothing is cached; every call queries the live system
  - A probe that cannot answer (missing tool, timeout) answers "not satisfied"
- Failure:
  - Never raises for a failing external tool
"""

import os
import pwd
import re
from pathlib import Path
from typing import Iterable

from ..util.shell import run_cmd, which

PROBE_TIMEOUT_S = 20


def command_exists(name: str) -> bool:
    return which(name) is not None


def is_root() -> bool:
    return os.geteuid() == 0


def dpkg_installed(package: str) -> bool:
    res = run_cmd(
        ["dpkg-query", "-W", "-f=${Status}", package], timeout_s=PROBE_TIMEOUT_S
    )
    return res.ok and "install ok installed" in res.stdout


def missing_packages(packages: Iterable[str]) -> list[str]:
    return [p for p in packages if not dpkg_installed(p)]


def service_active(unit: str) -> bool:
    res = run_cmd(["systemctl", "is-active", "--quiet", unit], timeout_s=PROBE_TIMEOUT_S)
    return res.ok


def service_enabled(unit: str) -> bool:
    res = run_cmd(["systemctl", "is-enabled", "--quiet", unit], timeout_s=PROBE_TIMEOUT_S)
    return res.ok


def user_groups(user: str) -> set[str]:
    res = run_cmd(["id", "-nG", user], timeout_s=PROBE_TIMEOUT_S)
    return set(res.stdout.split()) if res.ok else set()


def user_in_group(user: str, group: str) -> bool:
    return group in user_groups(user)


def login_shell(user: str) -> str | None:
    try:
        return pwd.getpwnam(user).pw_shell
    except KeyError:
        return None


def normalize_gvariant(text: str) -> str:
    """Strip GVariant decoration so `'Foo 12'`, `uint32 5` and `true` compare as plain text."""
    value = text.strip()
    value = re.sub(r"^(u?int(16|32|64)|byte|double)\s+", "", value)
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        value = value[1:-1]
    return value


def gsettings_get(schema: str, key: str) -> str | None:
    res = run_cmd(["gsettings", "get", schema, key], timeout_s=PROBE_TIMEOUT_S)
    if not res.ok:
        return None
    return normalize_gvariant(res.stdout)


def gsettings_matches(schema: str, key: str, value: str) -> bool:
    current = gsettings_get(schema, key)
    return current is not None and current == normalize_gvariant(value)


def gsettings_writable(schema: str, key: str) -> bool:
    res = run_cmd(["gsettings", "writable", schema, key], timeout_s=PROBE_TIMEOUT_S)
    return res.ok and res.stdout.strip() == "true"


def flatpak_remotes() -> set[str]:
    res = run_cmd(["flatpak", "remotes", "--columns=name"], timeout_s=PROBE_TIMEOUT_S)
    return set(res.stdout.split()) if res.ok else set()


def flatpak_app_installed(app_id: str) -> bool:
    return run_cmd(["flatpak", "info", app_id], timeout_s=PROBE_TIMEOUT_S).ok


def alternative_value(name: str) -> str | None:
    res = run_cmd(["update-alternatives", "--query", name], timeout_s=PROBE_TIMEOUT_S)
    if not res.ok:
        return None
    for line in res.stdout.splitlines():
        if line.startswith("Value:"):
            return line.split(":", 1)[1].strip()
    return None


def read_env_file(path: str | Path) -> dict[str, str]:
    """Parse a shell-style KEY=value file. Unreadable or missing files give {}."""
    data: dict[str, str] = {}
    try:
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                k, v = line.split("=", 1)
                data[k] = v.strip().strip('"')
    except OSError:
        pass
    return data


def os_release(path: str = "/etc/os-release") -> dict[str, str]:
    return read_env_file(path)
