from __future__ import annotations

"""Shell environment steps: PATH entry, Debian command shims, fish.

CONTRACT
- Inputs: BootstrapConfig
- Outputs (required):
  - Steps: path.local-bin, path.fd-shim, path.bat-shim,
    fish.default-shell (when enabled), fish.conf-d
- Invariants:
  - Login files only ever gain lines guarded by a marker check, so re-runs never duplicate them
  - Shims are created only when the canonical command is missing
- Failure:
  - Apply actions raise StepFailed/CommandFailed; all steps are advisory
"""

from pathlib import Path

from ..config import BootstrapConfig
from ..errors import StepFailed
from ..util.paths import ensure_dir, ensure_line, ensure_symlink
from ..util.shell import check_cmd, sudo, which
from ..util.text import file_contains
from .base import Step
from .probes import login_shell

PROFILE_PATH_LINE = 'export PATH="$HOME/.local/bin:$PATH"'
PROFILE_PATH_MARKER = "HOME/.local/bin"

# Debian ships these tools under different names.
SHIMS = {
    "fd": "fdfind",
    "bat": "batcat",
}

# conf.d file -> (marker, line)
FISH_SNIPPETS = {
    "starship.fish": ("starship init fish", "starship init fish | source"),
    "zoxide.fish": ("zoxide init fish", "zoxide init fish | source"),
    "fnm.fish": ("fnm env --use-on-cd --shell fish", "fnm env --use-on-cd --shell fish | source"),
}


def _local_bin_ready(cfg: BootstrapConfig) -> bool:
    return cfg.local_bin().is_dir() and file_contains(cfg.profile_path(), PROFILE_PATH_MARKER)


def _ensure_local_bin(cfg: BootstrapConfig) -> None:
    ensure_dir(cfg.local_bin())
    ensure_line(cfg.profile_path(), PROFILE_PATH_LINE, marker=PROFILE_PATH_MARKER)


def _shim_step(cfg: BootstrapConfig, name: str, debian_name: str) -> Step:
    link = cfg.local_bin() / name

    def _check() -> bool:
        return which(name) is not None or link.exists()

    def _apply() -> None:
        target = which(debian_name)
        if target is None:
            raise StepFailed(f"neither {name} nor {debian_name} is installed")
        ensure_symlink(Path(target), link)

    return Step(
        name=f"path.{name}-shim",
        description=f"{name} -> {debian_name}",
        check=_check,
        apply=_apply,
    )


def path_steps(cfg: BootstrapConfig) -> list[Step]:
    steps = [
        Step(
            name="path.local-bin",
            description="~/.local/bin exists and is on PATH",
            check=lambda: _local_bin_ready(cfg),
            apply=lambda: _ensure_local_bin(cfg),
        )
    ]
    steps.extend(_shim_step(cfg, name, debian) for name, debian in SHIMS.items())
    return steps


def _fish_is_login_shell(cfg: BootstrapConfig) -> bool:
    fish = which("fish")
    shell = login_shell(cfg.user)
    if fish is None or shell is None:
        return False
    return Path(shell).name == "fish"


def _set_fish_login_shell(cfg: BootstrapConfig) -> None:
    fish = which("fish")
    if fish is None:
        raise StepFailed("fish is not installed")
    try:
        check_cmd(sudo("chsh", "-s", fish, cfg.user))
    except StepFailed as exc:
        raise StepFailed(f"could not change login shell automatically ({exc})") from exc


def _fish_conf_dir(cfg: BootstrapConfig) -> Path:
    return cfg.home / ".config" / "fish" / "conf.d"


def _fish_snippets_present(cfg: BootstrapConfig) -> bool:
    conf_d = _fish_conf_dir(cfg)
    return all(file_contains(conf_d / fname, marker) for fname, (marker, _) in FISH_SNIPPETS.items())


def _write_fish_snippets(cfg: BootstrapConfig) -> None:
    conf_d = _fish_conf_dir(cfg)
    ensure_dir(conf_d)
    for fname, (marker, line) in FISH_SNIPPETS.items():
        ensure_line(conf_d / fname, line, marker=marker)


def fish_steps(cfg: BootstrapConfig) -> list[Step]:
    steps: list[Step] = []
    if cfg.set_fish_default:
        steps.append(
            Step(
                name="fish.default-shell",
                description="fish as login shell",
                check=lambda: _fish_is_login_shell(cfg),
                apply=lambda: _set_fish_login_shell(cfg),
            )
        )
    steps.append(
        Step(
            name="fish.conf-d",
            description="starship, zoxide, fnm wired into fish",
            check=lambda: _fish_snippets_present(cfg),
            apply=lambda: _write_fish_snippets(cfg),
        )
    )
    return steps
