from __future__ import annotations

"""Application steps: Flathub remote, Flatpak apps, native Wireshark with capture rights.

CONTRACT
- Inputs: BootstrapConfig (flatpak_apps, user)
- Outputs (required):
  - Steps: flatpak.flathub, flatpak.apps, wireshark.native
- Invariants:
  - Only missing Flatpak apps are installed
  - Wireshark comes from APT: the Flathub build cannot capture
- Failure:
  - Raises CommandFailed/StepFailed; all steps are advisory
"""

from loguru import logger

from ..config import BootstrapConfig
from ..errors import StepFailed
from ..util.shell import check_cmd, run_cmd, sudo
from .base import Step
from .pkg import apt_install
from .probes import dpkg_installed, flatpak_app_installed, flatpak_remotes, user_in_group

FLATHUB_NAME = "flathub"
FLATHUB_URL = "https://flathub.org/repo/flathub.flatpakrepo"
DUMPCAP = "/usr/bin/dumpcap"
DUMPCAP_CAPS = "cap_net_raw,cap_net_admin=eip"
WIRESHARK_PRESEED = "wireshark-common wireshark-common/install-setuid boolean true\n"


def _add_flathub() -> None:
    check_cmd(sudo("flatpak", "remote-add", "--if-not-exists", FLATHUB_NAME, FLATHUB_URL))


def _missing_apps(apps: tuple[str, ...]) -> list[str]:
    return [a for a in apps if not flatpak_app_installed(a)]


def _install_apps(cfg: BootstrapConfig) -> None:
    missing = _missing_apps(cfg.flatpak_apps)
    if not missing:
        return
    if not run_cmd(["flatpak", "update", "-y"]).ok:
        logger.warning("flatpak update failed; installing anyway")
    check_cmd(["flatpak", "install", "-y", FLATHUB_NAME, *missing])
    logger.info(f"Installed Flatpak apps: {', '.join(missing)}")


def dumpcap_has_caps() -> bool:
    res = run_cmd(["getcap", DUMPCAP], timeout_s=10)
    return res.ok and "cap_net_admin" in res.stdout and "cap_net_raw" in res.stdout


def _wireshark_ready(cfg: BootstrapConfig) -> bool:
    return (
        dpkg_installed("wireshark")
        and user_in_group(cfg.user, "wireshark")
        and dumpcap_has_caps()
    )


def _install_wireshark(cfg: BootstrapConfig) -> None:
    # Answer the "non-superusers capture" debconf question up front.
    check_cmd(sudo("debconf-set-selections"), input_text=WIRESHARK_PRESEED)
    apt_install(["wireshark"])
    check_cmd(sudo("usermod", "-aG", "wireshark", cfg.user))
    res = run_cmd(sudo("setcap", DUMPCAP_CAPS, DUMPCAP))
    if not res.ok:
        raise StepFailed(f"setcap on {DUMPCAP} failed: {res.stderr.strip()}")
    logger.warning(f"Added {cfg.user} to 'wireshark'. Run: newgrp wireshark (or log out/in).")


def app_steps(cfg: BootstrapConfig) -> list[Step]:
    return [
        Step(
            name="flatpak.flathub",
            description="Flathub remote",
            check=lambda: FLATHUB_NAME in flatpak_remotes(),
            apply=_add_flathub,
        ),
        Step(
            name="flatpak.apps",
            description=", ".join(cfg.flatpak_apps) or "no apps configured",
            check=lambda: not _missing_apps(cfg.flatpak_apps),
            apply=lambda: _install_apps(cfg),
        ),
        Step(
            name="wireshark.native",
            description="Wireshark (APT) with capture permissions",
            check=lambda: _wireshark_ready(cfg),
            apply=lambda: _install_wireshark(cfg),
        ),
    ]
