from __future__ import annotations

"""System steps: sanity checks, APT baseline, power management, cleanup.

CONTRACT
- Inputs: BootstrapConfig
- Outputs (required):
  - Steps: sanity.not-root, sanity.sudo, sanity.dotfiles-repo, apt.baseline,
    power.remove-tlp, power.enable-daemons, power.balanced-profile, apt.autoremove
- Invariants:
  - Sanity steps and the APT baseline are fatal; the rest are advisory
  - apt.baseline is satisfied only when every baseline package is installed
- Failure:
  - Apply actions raise StepFailed/CommandFailed
"""

from ..config import BootstrapConfig
from ..errors import StepFailed
from ..util.shell import check_cmd, run_cmd, sudo
from .base import Step, refuse
from .pkg import apt_get, apt_install, apt_purge, apt_update, apt_upgrade, autoremove_candidates
from .probes import (
    command_exists,
    dpkg_installed,
    is_root,
    missing_packages,
    service_active,
    service_enabled,
)

BASE_PACKAGES = (
    # build toolchain
    "build-essential", "cmake", "pkg-config",
    "gcc", "g++", "gdb", "valgrind",
    "clang", "clang-format", "clang-tidy", "libc++-dev", "libc++abi-dev",
    # network + archive tools
    "git", "curl", "wget", "ca-certificates", "gnupg", "lsb-release",
    "unzip", "zip", "tar", "xz-utils", "jq",
    # python
    "python3", "python3-pip", "python3-venv", "pipx",
    # shell + CLI
    "stow", "tmux", "fish",
    "ripgrep", "fzf", "fd-find", "tree", "htop", "luarocks",
    "bat", "xclip",
    "starship", "zoxide",
    # system services
    "ufw", "thermald", "power-profiles-daemon",
    "flatpak",
    # desktop
    "fonts-jetbrains-mono", "alacritty",
)

CONFLICTING_POWER_PACKAGES = ("tlp", "tlp-rdw")
POWER_SERVICES = ("thermald", "power-profiles-daemon")


def baseline_packages(cfg: BootstrapConfig) -> list[str]:
    return list(dict.fromkeys([*BASE_PACKAGES, *cfg.extra_packages]))


def sanity_steps(cfg: BootstrapConfig) -> list[Step]:
    return [
        Step(
            name="sanity.not-root",
            description="run as a regular user",
            check=lambda: not is_root(),
            apply=refuse("Run as a regular user (not root)."),
            fatal=True,
        ),
        Step(
            name="sanity.sudo",
            description="sudo is available",
            check=lambda: command_exists("sudo"),
            apply=refuse(
                f"sudo is missing. As root run: apt-get install -y sudo && usermod -aG sudo {cfg.user}; "
                "then re-login and re-run."
            ),
            fatal=True,
        ),
        Step(
            name="sanity.dotfiles-repo",
            description="dotfiles repository configured",
            check=lambda: bool(cfg.dotfiles_repo.strip()),
            apply=refuse("Set dotfiles_repo in deskboot.yaml (or DESKBOOT_DOTFILES_REPO)."),
            fatal=True,
        ),
    ]


def apt_baseline_step(cfg: BootstrapConfig) -> Step:
    packages = baseline_packages(cfg)

    def _apply() -> None:
        apt_update()
        apt_upgrade()
        apt_install(packages)

    return Step(
        name="apt.baseline",
        description="APT baseline + CLI toolchain",
        check=lambda: not missing_packages(packages),
        apply=_apply,
        fatal=True,
    )


def _balanced_profile_active() -> bool:
    res = run_cmd(["powerprofilesctl", "get"], timeout_s=10)
    return res.ok and res.stdout.strip() == "balanced"


def _enable_power_services() -> None:
    for unit in POWER_SERVICES:
        check_cmd(sudo("systemctl", "enable", "--now", unit))


def _remove_tlp() -> None:
    apt_purge(CONFLICTING_POWER_PACKAGES)
    run_cmd(sudo("systemctl", "disable", "--now", "tlp"))
    left = [p for p in CONFLICTING_POWER_PACKAGES if dpkg_installed(p)]
    if left:
        raise StepFailed(f"could not purge: {', '.join(left)}")


def _set_balanced() -> None:
    if not command_exists("powerprofilesctl"):
        raise StepFailed("powerprofilesctl not found")
    check_cmd(["powerprofilesctl", "set", "balanced"])


def power_steps(cfg: BootstrapConfig) -> list[Step]:
    return [
        Step(
            name="power.remove-tlp",
            description="TLP conflicts with power-profiles-daemon",
            check=lambda: not any(dpkg_installed(p) for p in CONFLICTING_POWER_PACKAGES),
            apply=_remove_tlp,
        ),
        Step(
            name="power.enable-daemons",
            description="thermald + power-profiles-daemon running",
            check=lambda: all(service_enabled(u) and service_active(u) for u in POWER_SERVICES),
            apply=_enable_power_services,
        ),
        Step(
            name="power.balanced-profile",
            description="default to the balanced power profile",
            check=_balanced_profile_active,
            apply=_set_balanced,
        ),
    ]


def _autoremove() -> None:
    check_cmd(apt_get("autoremove", "-y"))


def autoremove_step(cfg: BootstrapConfig) -> Step:
    return Step(
        name="apt.autoremove",
        description="final cleanup",
        check=lambda: autoremove_candidates() == [],
        apply=_autoremove,
    )
