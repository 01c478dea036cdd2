from __future__ import annotations

"""Configuration model.

CONTRACT
- Inputs: YAML file path (deskboot.yaml), environment mapping
- Outputs (required):
  - Validated, immutable BootstrapConfig
- Invariants:
  - Constructed once at startup and passed by reference; never mutated
  - Precedence: defaults < YAML file < environment variables
  - Default values are safe (no destructive toggles beyond the stock desktop setup)
- Failure:
  - Raises ValueError on invalid schema or values
"""

import getpass
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

DEFAULT_CONFIG_NAME = "deskboot.yaml"
DEFAULT_DOCKER_DESKTOP_DEB_URL = (
    "https://desktop.docker.com/linux/main/amd64/docker-desktop-amd64.deb"
)
DEFAULT_FLATPAK_APPS = ("com.discordapp.Discord", "com.spotify.Client")

ENV_OVERRIDES = {
    "DESKBOOT_DOTFILES_REPO": "dotfiles_repo",
    "DOCKER_DESKTOP_DEB_URL": "docker_desktop_deb_url",
}


@dataclass(frozen=True)
class BootstrapConfig:
    dotfiles_repo: str = ""
    dotfiles_dir: Path | None = None
    set_fish_default: bool = True
    gnome_workspaces: int = 5
    gnome_font_size: int = 12
    gnome_font: str = "JetBrains Mono"
    docker_desktop: bool = True
    docker_desktop_deb_url: str = DEFAULT_DOCKER_DESKTOP_DEB_URL
    allow_ssh: bool = True
    flatpak_apps: tuple[str, ...] = DEFAULT_FLATPAK_APPS
    extra_packages: tuple[str, ...] = ()
    home: Path = field(default_factory=Path.home)
    user: str = field(default_factory=getpass.getuser)

    def dotfiles_path(self) -> Path:
        return self.dotfiles_dir or (self.home / ".dotfiles")

    def profile_path(self) -> Path:
        return self.home / ".profile"

    def local_bin(self) -> Path:
        return self.home / ".local" / "bin"

    def font_spec(self) -> str:
        return f"{self.gnome_font} {self.gnome_font_size}"


CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "dotfiles_repo": {"type": "string"},
        "dotfiles_dir": {"type": ["string", "null"]},
        "set_fish_default": {"type": "boolean"},
        "gnome_workspaces": {"type": "integer", "minimum": 1, "maximum": 36},
        "gnome_font_size": {"type": "integer", "minimum": 6, "maximum": 72},
        "gnome_font": {"type": "string", "minLength": 1},
        "docker_desktop": {"type": "boolean"},
        "docker_desktop_deb_url": {"type": "string", "pattern": "^https?://"},
        "allow_ssh": {"type": "boolean"},
        "flatpak_apps": {
            "type": "array",
            "items": {"type": "string", "pattern": "^[A-Za-z0-9_-]+(\\.[A-Za-z0-9_-]+)+$"},
        },
        "extra_packages": {
            "type": "array",
            "items": {"type": "string", "pattern": "^[a-z0-9][a-z0-9+.-]*$"},
        },
        "home": {"type": "string"},
    },
    "additionalProperties": False,
}


def _coerce(data: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in data.items():
        if key in ("dotfiles_dir", "home") and value is not None:
            out[key] = Path(os.path.expanduser(str(value)))
        elif key in ("flatpak_apps", "extra_packages"):
            out[key] = tuple(str(v) for v in value or ())
        else:
            out[key] = value
    return out


def config_from_mapping(data: Mapping[str, Any]) -> BootstrapConfig:
    import jsonschema  # lazy import

    try:
        jsonschema.validate(instance=dict(data), schema=CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        where = ".".join(str(p) for p in e.absolute_path) or "<root>"
        raise ValueError(f"Invalid {DEFAULT_CONFIG_NAME} at {where}: {e.message}") from e
    return BootstrapConfig(**_coerce(data))


def apply_env_overrides(cfg: BootstrapConfig, env: Mapping[str, str]) -> BootstrapConfig:
    changes = {attr: env[var] for var, attr in ENV_OVERRIDES.items() if env.get(var)}
    return replace(cfg, **changes) if changes else cfg


def load_config(
    path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> BootstrapConfig:
    """Build the one BootstrapConfig for this run."""
    data: dict[str, Any] = {}
    if path is not None:
        if not path.exists():
            raise ValueError(f"Config file not found: {path}")
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ValueError(f"{path} must contain a mapping at the top level")
        data = loaded
    cfg = config_from_mapping(data)
    return apply_env_overrides(cfg, os.environ if env is None else env)


def default_config_path(cwd: Path | None = None) -> Path | None:
    candidate = (cwd or Path.cwd()) / DEFAULT_CONFIG_NAME
    return candidate if candidate.exists() else None


def config_as_dict(cfg: BootstrapConfig) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for f in fields(cfg):
        value = getattr(cfg, f.name)
        if isinstance(value, Path):
            value = str(value)
        elif isinstance(value, tuple):
            value = list(value)
        out[f.name] = value
    out["dotfiles_dir"] = str(cfg.dotfiles_path())
    return out


if __name__ == "__main__":
    import argparse
    import sys

    parser = argparse.ArgumentParser(description="Config Loader CLI")
    parser.add_argument("--config", help="Path to deskboot.yaml")
    args = parser.parse_args()

    try:
        cfg = load_config(Path(args.config) if args.config else None)
        print(yaml.safe_dump(config_as_dict(cfg), sort_keys=False))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
