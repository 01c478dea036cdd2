from __future__ import annotations

"""Desktop steps: GNOME settings and Alacritty as default terminal.

CONTRACT
- Inputs: BootstrapConfig (gnome_workspaces, gnome_font, gnome_font_size)
- Outputs (required):
  - Steps: gnome.settings, terminal.alacritty
- Invariants:
  - Only keys whose current value differs are written
  - Every key is attempted even when an earlier one fails
- Failure:
  - Raises StepFailed listing the keys that could not be set; both steps are advisory
"""

from dataclasses import dataclass

from ..config import BootstrapConfig
from ..errors import StepFailed
from ..util.shell import check_cmd, run_cmd, sudo, which
from .base import Step
from .probes import alternative_value, gsettings_matches, gsettings_writable

TERMINAL_ALTERNATIVE = "x-terminal-emulator"
TERMINAL_LINK = "/usr/bin/x-terminal-emulator"
TERMINAL_SCHEMA = "org.gnome.desktop.default-applications.terminal"


@dataclass(frozen=True)
class GSetting:
    schema: str
    key: str
    value: str

    def matches(self) -> bool:
        return gsettings_matches(self.schema, self.key, self.value)


def gnome_settings(cfg: BootstrapConfig) -> list[GSetting]:
    font = cfg.font_spec()
    return [
        # natural scrolling for mouse & touchpad
        GSetting("org.gnome.desktop.peripherals.mouse", "natural-scroll", "true"),
        GSetting("org.gnome.desktop.peripherals.touchpad", "natural-scroll", "true"),
        # fixed number of workspaces
        GSetting("org.gnome.mutter", "dynamic-workspaces", "false"),
        GSetting("org.gnome.desktop.wm.preferences", "num-workspaces", str(cfg.gnome_workspaces)),
        # UI + monospace fonts
        GSetting("org.gnome.desktop.interface", "font-name", font),
        GSetting("org.gnome.desktop.interface", "document-font-name", font),
        GSetting("org.gnome.desktop.interface", "monospace-font-name", font),
    ]


def _settings_applied(settings: list[GSetting]) -> bool:
    return which("gsettings") is not None and all(s.matches() for s in settings)


def _apply_settings(settings: list[GSetting]) -> None:
    if which("gsettings") is None:
        raise StepFailed("gsettings not found; skipping GNOME tweaks")
    failed = []
    for s in settings:
        if s.matches():
            continue
        if not run_cmd(["gsettings", "set", s.schema, s.key, s.value]).ok:
            failed.append(f"{s.schema} {s.key}")
    if failed:
        raise StepFailed(f"could not set: {', '.join(failed)}")


def _gnome_terminal_is_alacritty() -> bool:
    if which("gsettings") is None or not gsettings_writable(TERMINAL_SCHEMA, "exec"):
        return True
    return gsettings_matches(TERMINAL_SCHEMA, "exec", "alacritty")


def _alacritty_is_default() -> bool:
    alacritty = which("alacritty")
    if alacritty is None:
        return False
    if which("update-alternatives") is not None and alternative_value(TERMINAL_ALTERNATIVE) != alacritty:
        return False
    return _gnome_terminal_is_alacritty()


def _set_alacritty_default() -> None:
    alacritty = which("alacritty")
    if alacritty is None:
        raise StepFailed("alacritty is not installed")
    if which("update-alternatives") is not None:
        listed = run_cmd(["update-alternatives", "--list", TERMINAL_ALTERNATIVE])
        if not listed.ok or alacritty not in listed.stdout.split():
            check_cmd(
                sudo(
                    "update-alternatives", "--install",
                    TERMINAL_LINK, TERMINAL_ALTERNATIVE, alacritty, "50",
                )
            )
        check_cmd(sudo("update-alternatives", "--set", TERMINAL_ALTERNATIVE, alacritty))
    if which("gsettings") is not None and gsettings_writable(TERMINAL_SCHEMA, "exec"):
        check_cmd(["gsettings", "set", TERMINAL_SCHEMA, "exec", "alacritty"])
        check_cmd(["gsettings", "set", TERMINAL_SCHEMA, "exec-arg", ""])


def desktop_steps(cfg: BootstrapConfig) -> list[Step]:
    settings = gnome_settings(cfg)
    return [
        Step(
            name="gnome.settings",
            description="natural scroll, workspaces, fonts",
            check=lambda: _settings_applied(settings),
            apply=lambda: _apply_settings(settings),
        ),
        Step(
            name="terminal.alacritty",
            description="Alacritty as default terminal",
            check=_alacritty_is_default,
            apply=_set_alacritty_default,
        ),
    ]
