from __future__ import annotations

"""Dotfiles steps: clone, fast-forward, stow every package into $HOME.

CONTRACT
- Inputs: BootstrapConfig (dotfiles_repo, dotfiles_path(), home)
- Outputs (required):
  - Steps: dotfiles.clone (fatal), dotfiles.pull, dotfiles.stow
- Invariants:
  - The repository is cloned once; later runs only fast-forward it
  - A clone that already contains its upstream (equal or ahead) is up to date
  - The dotfiles.pull check runs `git fetch`: it needs the network and refreshes
    remote-tracking refs (also under `deskboot plan`), never the working tree
  - A stow package counts as done when a dry run (`stow -n`) would create no links
  - Conflicting files are adopted into the repo (`stow --adopt`) rather than overwritten
- Failure:
  - Raises CommandFailed/StepFailed from apply actions
"""

from pathlib import Path

from loguru import logger

from ..config import BootstrapConfig
from ..errors import StepFailed
from ..util.redaction import Redactor
from ..util.shell import check_cmd, run_cmd
from .base import Step


def stow_packages(stow_dir: Path) -> list[str]:
    if not stow_dir.is_dir():
        return []
    return sorted(
        p.name for p in stow_dir.iterdir() if p.is_dir() and not p.name.startswith(".")
    )


def _is_cloned(cfg: BootstrapConfig) -> bool:
    return (cfg.dotfiles_path() / ".git").is_dir()


def _clone(cfg: BootstrapConfig) -> None:
    dest = cfg.dotfiles_path()
    logger.info(f"Cloning {Redactor().redact(cfg.dotfiles_repo)} into {dest}")
    check_cmd(["git", "clone", cfg.dotfiles_repo, str(dest)])


def _up_to_date(cfg: BootstrapConfig) -> bool:
    """True when the clone already contains its upstream (equal to it or ahead of it)."""
    repo = cfg.dotfiles_path()
    if not _is_cloned(cfg):
        return False
    # Network: refreshes remote-tracking refs only; the working tree is untouched.
    check_cmd(["git", "-C", str(repo), "fetch", "--quiet"], timeout_s=120)
    upstream = run_cmd(["git", "-C", str(repo), "rev-parse", "--verify", "--quiet", "@{u}"])
    if not upstream.ok:
        # No upstream configured: nothing to fast-forward to.
        return True
    contained = run_cmd(["git", "-C", str(repo), "merge-base", "--is-ancestor", "@{u}", "HEAD"])
    return contained.ok


def _pull(cfg: BootstrapConfig) -> None:
    check_cmd(["git", "-C", str(cfg.dotfiles_path()), "pull", "--ff-only"])


def _stow_cmd(cfg: BootstrapConfig, package: str, *extra: str) -> list[str]:
    return ["stow", "-v", "-d", str(cfg.dotfiles_path()), "-t", str(cfg.home), *extra, package]


def package_stowed(cfg: BootstrapConfig, package: str) -> bool:
    res = run_cmd(_stow_cmd(cfg, package, "-n"), timeout_s=60)
    if not res.ok:
        return False
    return "LINK:" not in (res.stdout + res.stderr)


def _all_stowed(cfg: BootstrapConfig) -> bool:
    packages = stow_packages(cfg.dotfiles_path())
    return bool(packages) and all(package_stowed(cfg, p) for p in packages)


def _stow_all(cfg: BootstrapConfig) -> None:
    packages = stow_packages(cfg.dotfiles_path())
    if not packages:
        raise StepFailed(f"no stow packages found in {cfg.dotfiles_path()}")
    for pkg in packages:
        logger.info(f"[stow] installing package: {pkg}")
        if run_cmd(_stow_cmd(cfg, pkg)).ok:
            continue
        logger.warning(f"Conflicts while stowing {pkg}; adopting existing files")
        check_cmd(_stow_cmd(cfg, pkg, "--adopt"))


def dotfiles_steps(cfg: BootstrapConfig) -> list[Step]:
    return [
        Step(
            name="dotfiles.clone",
            description=str(cfg.dotfiles_path()),
            check=lambda: _is_cloned(cfg),
            apply=lambda: _clone(cfg),
            fatal=True,
        ),
        Step(
            name="dotfiles.pull",
            description="fast-forward to upstream",
            check=lambda: _up_to_date(cfg),
            apply=lambda: _pull(cfg),
        ),
        Step(
            name="dotfiles.stow",
            description="stow packages into $HOME (adopt conflicts)",
            check=lambda: _all_stowed(cfg),
            apply=lambda: _stow_all(cfg),
        ),
    ]
