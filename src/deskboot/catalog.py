from __future__ import annotations

"""Provisioning catalog.

CONTRACT
- Inputs: BootstrapConfig
- Outputs (required):
  - Ordered list of Steps for a Debian developer desktop
- Invariants:
  - Order is fixed; later steps may rely on tools installed by earlier ones
  - Disabled toggles remove their step from the list (they are not "satisfied")
  - Step names are unique
- Failure:
  - select_steps() raises ValueError on unknown step names
"""

from typing import Iterable

from .config import BootstrapConfig
from .steps.apps import app_steps
from .steps.base import Step
from .steps.desktop import desktop_steps
from .steps.docker import docker_steps
from .steps.dotfiles import dotfiles_steps
from .steps.firewall import firewall_step
from .steps.shell_env import fish_steps, path_steps
from .steps.system import apt_baseline_step, autoremove_step, power_steps, sanity_steps
from .steps.toolchains import neovim_step, node_steps, rust_steps
from .util.ids import ensure_unique

# Preconditions stay in a filtered run unless skipped by name.
ALWAYS_RUN = "sanity"


def build_steps(cfg: BootstrapConfig) -> list[Step]:
    steps: list[Step] = []
    steps += sanity_steps(cfg)
    steps.append(apt_baseline_step(cfg))
    steps += power_steps(cfg)
    steps += path_steps(cfg)
    steps.append(firewall_step(cfg))
    steps += docker_steps(cfg)
    steps += rust_steps(cfg)
    steps += node_steps(cfg)
    steps.append(neovim_step(cfg))
    steps += app_steps(cfg)
    steps += dotfiles_steps(cfg)
    steps += fish_steps(cfg)
    steps += desktop_steps(cfg)
    steps.append(autoremove_step(cfg))
    ensure_unique(s.name for s in steps)
    return steps


def _matches(name: str, selector: str) -> bool:
    # "docker" selects docker.engine, docker.group, ...
    return name == selector or name.startswith(selector + ".")


def select_steps(
    steps: list[Step],
    only: Iterable[str] = (),
    skip: Iterable[str] = (),
) -> list[Step]:
    """Filter by exact name or dotted prefix, keeping catalog order."""
    only, skip = list(only), list(skip)
    for sel in [*only, *skip]:
        if not any(_matches(s.name, sel) for s in steps):
            raise ValueError(f"Unknown step: {sel}")
    out = steps
    if only:
        out = [
            s for s in out
            if _matches(s.name, ALWAYS_RUN) or any(_matches(s.name, sel) for sel in only)
        ]
    if skip:
        out = [s for s in out if not any(_matches(s.name, sel) for sel in skip)]
    return out
