"""deskboot package.

Simple API for scripts that drive the bootstrap themselves:

    import deskboot

    # What would change on this machine?
    report = deskboot.plan("deskboot.yaml")

    # Converge it
    result = deskboot.bootstrap("deskboot.yaml", skip=["docker.desktop"])
"""

from pathlib import Path
from typing import Iterable, Optional

from .catalog import build_steps, select_steps
from .config import BootstrapConfig, load_config
from .orchestrator import RunResult, plan_steps, run_steps
from .steps.base import Outcome, Step

__version__ = "0.1.0"


def _steps(
    config: Optional[str | Path | BootstrapConfig],
    only: Iterable[str],
    skip: Iterable[str],
) -> list[Step]:
    if isinstance(config, BootstrapConfig):
        cfg = config
    else:
        cfg = load_config(Path(config) if config else None)
    return select_steps(build_steps(cfg), only, skip)


def bootstrap(
    config: Optional[str | Path | BootstrapConfig] = None,
    *,
    only: Iterable[str] = (),
    skip: Iterable[str] = (),
) -> dict:
    """Run the provisioning catalog. Returns structured result.

    Args:
        config: Path to deskboot.yaml, a BootstrapConfig, or None for defaults
        only: Step names/prefixes to run (sanity checks always included)
        skip: Step names/prefixes to leave out

    Returns:
        dict with keys: status, exit_code, steps, warnings, aborted
    """
    from .artifacts.schemas import run_report

    result = run_steps(_steps(config, only, skip))
    return run_report(result).model_dump()


def plan(
    config: Optional[str | Path | BootstrapConfig] = None,
    *,
    only: Iterable[str] = (),
    skip: Iterable[str] = (),
) -> dict:
    """Evaluate checks only; nothing on the machine changes.

    Returns:
        dict with keys: pending, steps
    """
    from .artifacts.schemas import plan_report

    return plan_report(plan_steps(_steps(config, only, skip))).model_dump()


__all__ = [
    "bootstrap",
    "plan",
    "BootstrapConfig",
    "Outcome",
    "RunResult",
    "Step",
    "load_config",
    "plan_steps",
    "run_steps",
]
