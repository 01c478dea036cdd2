from __future__ import annotations

"""Docker steps: Engine from the official repo, docker group, optional Docker Desktop.

CONTRACT
- Inputs: BootstrapConfig (user, docker_desktop, docker_desktop_deb_url)
- Outputs (required):
  - Steps: docker.engine (fatal), docker.group, docker.desktop (when enabled)
- Invariants:
  - The APT source and keyring are rewritten only when the engine is not yet installed
  - Group membership changes take effect on next login; the step says so
- Failure:
  - Raises CommandFailed/StepFailed from apply actions
"""

import tempfile
from pathlib import Path

from loguru import logger

from ..config import BootstrapConfig
from ..errors import StepFailed
from ..util.shell import check_cmd, run_cmd, sudo
from .base import Step
from .pkg import apt_get, apt_install, apt_remove, apt_update
from .probes import dpkg_installed, missing_packages, os_release, user_in_group

DOCKER_GPG_URL = "https://download.docker.com/linux/debian/gpg"
DOCKER_APT_URL = "https://download.docker.com/linux/debian"
KEYRING_DIR = Path("/etc/apt/keyrings")
KEYRING = KEYRING_DIR / "docker.gpg"
SOURCES_LIST = Path("/etc/apt/sources.list.d/docker.list")

ENGINE_PACKAGES = (
    "docker-ce",
    "docker-ce-cli",
    "containerd.io",
    "docker-buildx-plugin",
    "docker-compose-plugin",
)
CONFLICTING_PACKAGES = (
    "docker",
    "docker-engine",
    "docker.io",
    "containerd",
    "runc",
    "docker-doc",
    "podman-docker",
)


def docker_source_line(arch: str, codename: str) -> str:
    return f"deb [arch={arch} signed-by={KEYRING}] {DOCKER_APT_URL} {codename} stable"


def _install_engine() -> None:
    apt_remove(CONFLICTING_PACKAGES)
    check_cmd(sudo("install", "-m", "0755", "-d", str(KEYRING_DIR)))

    key = check_cmd(["curl", "-fsSL", DOCKER_GPG_URL]).stdout
    check_cmd(sudo("gpg", "--dearmor", "--yes", "-o", str(KEYRING)), input_text=key)

    arch = check_cmd(["dpkg", "--print-architecture"]).stdout.strip()
    codename = os_release().get("VERSION_CODENAME", "")
    if not codename:
        raise StepFailed("could not read VERSION_CODENAME from /etc/os-release")
    check_cmd(
        sudo("tee", str(SOURCES_LIST)),
        input_text=docker_source_line(arch, codename) + "\n",
    )

    apt_update()
    apt_install(ENGINE_PACKAGES)


def _add_to_docker_group(cfg: BootstrapConfig) -> None:
    check_cmd(sudo("usermod", "-aG", "docker", cfg.user))
    logger.warning(f"Added {cfg.user} to 'docker'. Run: newgrp docker (or log out/in) to pick it up.")


def _install_docker_desktop(cfg: BootstrapConfig) -> None:
    with tempfile.TemporaryDirectory(prefix="deskboot-dd-") as work:
        deb = Path(work) / "docker-desktop-amd64.deb"
        check_cmd(["curl", "-fL", cfg.docker_desktop_deb_url, "-o", str(deb)])
        apt_update()
        # apt warns about the unsandboxed download of a local .deb; the package state decides.
        res = run_cmd(apt_get("install", "-y", str(deb)))
    if not dpkg_installed("docker-desktop"):
        raise StepFailed(f"docker-desktop not installed (apt exit {res.returncode})")
    if not run_cmd(["systemctl", "--user", "enable", "docker-desktop"]).ok:
        logger.warning("Could not enable the docker-desktop user unit; start it from the apps menu.")


def docker_steps(cfg: BootstrapConfig) -> list[Step]:
    steps = [
        Step(
            name="docker.engine",
            description="Docker Engine + Buildx + Compose (official repo)",
            check=lambda: not missing_packages(ENGINE_PACKAGES),
            apply=_install_engine,
            fatal=True,
        ),
        Step(
            name="docker.group",
            description=f"{cfg.user} in docker group",
            check=lambda: user_in_group(cfg.user, "docker"),
            apply=lambda: _add_to_docker_group(cfg),
        ),
    ]
    if cfg.docker_desktop:
        steps.append(
            Step(
                name="docker.desktop",
                description="Docker Desktop for Linux (.deb)",
                check=lambda: dpkg_installed("docker-desktop"),
                apply=lambda: _install_docker_desktop(cfg),
            )
        )
    return steps
