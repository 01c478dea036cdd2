from __future__ import annotations

"""Environment health checks.

CONTRACT
- Inputs: BootstrapConfig
- Outputs (required):
  - DoctorReport (ok=bool, items=[(name, status, details)])
- Invariants:
  - Checks: user, sudo, apt-get, os-release, dotfiles repo, core tools, optional tools
  - Does not modify system state (read-only checks)
- Failure:
  - Returns DoctorReport with ok=False if critical checks fail
"""

from dataclasses import dataclass

from .config import BootstrapConfig
from .steps.probes import is_root, os_release
from .util.redaction import Redactor
from .util.shell import which

CORE_TOOLS = {
    "git": "needed to clone dotfiles and build Neovim",
    "curl": "needed for Docker, rustup and fnm installers",
    "flatpak": "installed by apt.baseline; Flatpak apps need it",
    "gsettings": "GNOME tweaks will be skipped",
    "stow": "installed by apt.baseline; dotfiles need it",
}
OPTIONAL_TOOLS = ("fish", "alacritty", "rustup", "fnm", "nvim", "docker")


@dataclass(frozen=True)
class DoctorItem:
    name: str
    status: str
    details: str


@dataclass(frozen=True)
class DoctorReport:
    ok: bool
    items: list[DoctorItem]


def doctor_report(cfg: BootstrapConfig, verbose: bool = False) -> DoctorReport:
    items: list[DoctorItem] = []
    ok = True

    # 1. Critical: regular user with sudo
    if is_root():
        ok = False
        items.append(DoctorItem("user", "FAIL", "Running as root; run as a regular user."))
    else:
        items.append(DoctorItem("user", "OK", cfg.user))

    sudo_bin = which("sudo")
    if sudo_bin:
        items.append(DoctorItem("sudo", "OK", sudo_bin))
    else:
        ok = False
        items.append(DoctorItem("sudo", "FAIL", "sudo not found; install it as root and re-login"))

    apt_bin = which("apt-get")
    if apt_bin:
        items.append(DoctorItem("apt-get", "OK", apt_bin))
    else:
        ok = False
        items.append(DoctorItem("apt-get", "FAIL", "not a Debian-based system"))

    release = os_release()
    if release.get("ID") == "debian" or "debian" in release.get("ID_LIKE", ""):
        items.append(
            DoctorItem("os", "OK", f"{release.get('PRETTY_NAME', 'Debian')} ({release.get('VERSION_CODENAME', '?')})")
        )
    else:
        items.append(DoctorItem("os", "WARN", f"untested distribution: {release.get('PRETTY_NAME', 'unknown')}"))

    # 2. Critical: config
    if cfg.dotfiles_repo.strip():
        items.append(DoctorItem("dotfiles repo", "OK", Redactor().redact(cfg.dotfiles_repo)))
    else:
        ok = False
        items.append(DoctorItem("dotfiles repo", "FAIL", "dotfiles_repo is not set"))

    # 3. Tools the steps rely on
    for tool, why in CORE_TOOLS.items():
        path = which(tool)
        if path:
            items.append(DoctorItem(tool, "OK", path))
        else:
            items.append(DoctorItem(tool, "WARN", f"{tool} not found; {why}"))

    if verbose:
        for tool in OPTIONAL_TOOLS:
            path = which(tool)
            items.append(DoctorItem(tool, "INFO", path or "not installed yet"))

    return DoctorReport(ok=ok, items=items)
