import dataclasses
from pathlib import Path

import pytest

from deskboot.config import (
    DEFAULT_DOCKER_DESKTOP_DEB_URL,
    BootstrapConfig,
    config_as_dict,
    default_config_path,
    load_config,
)


def test_defaults(tmp_path):
    cfg = load_config(None, env={})
    assert cfg.dotfiles_repo == ""
    assert cfg.set_fish_default is True
    assert cfg.gnome_workspaces == 5
    assert cfg.gnome_font_size == 12
    assert cfg.docker_desktop is True
    assert cfg.docker_desktop_deb_url == DEFAULT_DOCKER_DESKTOP_DEB_URL
    assert cfg.dotfiles_path() == cfg.home / ".dotfiles"


def test_config_is_frozen():
    cfg = BootstrapConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        cfg.gnome_workspaces = 9


def test_load_yaml(tmp_path):
    p = tmp_path / "deskboot.yaml"
    p.write_text(
        "dotfiles_repo: https://example.com/me/dotfiles.git\n"
        "gnome_workspaces: 4\n"
        "gnome_font_size: 14\n"
        "docker_desktop: false\n"
        f"home: {tmp_path}\n"
        "dotfiles_dir: ~/dots\n"
        "flatpak_apps: [org.example.App]\n"
        "extra_packages: [neofetch]\n"
    )
    cfg = load_config(p, env={})
    assert cfg.dotfiles_repo == "https://example.com/me/dotfiles.git"
    assert cfg.gnome_workspaces == 4
    assert cfg.font_spec() == "JetBrains Mono 14"
    assert cfg.docker_desktop is False
    assert cfg.home == tmp_path
    assert cfg.dotfiles_path() == Path("~/dots").expanduser()
    assert cfg.flatpak_apps == ("org.example.App",)
    assert cfg.extra_packages == ("neofetch",)


def test_env_overrides_file(tmp_path):
    p = tmp_path / "deskboot.yaml"
    p.write_text("dotfiles_repo: https://example.com/file.git\n")
    cfg = load_config(
        p,
        env={
            "DESKBOOT_DOTFILES_REPO": "https://example.com/env.git",
            "DOCKER_DESKTOP_DEB_URL": "https://example.com/dd.deb",
        },
    )
    assert cfg.dotfiles_repo == "https://example.com/env.git"
    assert cfg.docker_desktop_deb_url == "https://example.com/dd.deb"


def test_empty_yaml_is_defaults(tmp_path):
    p = tmp_path / "deskboot.yaml"
    p.write_text("")
    assert load_config(p, env={}).gnome_workspaces == 5


@pytest.mark.parametrize(
    "body",
    [
        "gnome_workspaces: 0\n",
        "gnome_font_size: 200\n",
        "unknown_key: 1\n",
        "set_fish_default: maybe\n",
        "extra_packages: ['Bad Name']\n",
    ],
)
def test_invalid_values(tmp_path, body):
    p = tmp_path / "deskboot.yaml"
    p.write_text(body)
    with pytest.raises(ValueError, match="Invalid deskboot.yaml"):
        load_config(p, env={})


def test_non_mapping_rejected(tmp_path):
    p = tmp_path / "deskboot.yaml"
    p.write_text("- a\n- b\n")
    with pytest.raises(ValueError, match="mapping"):
        load_config(p, env={})


def test_missing_file(tmp_path):
    with pytest.raises(ValueError, match="not found"):
        load_config(tmp_path / "nope.yaml", env={})


def test_default_config_path(tmp_path):
    assert default_config_path(tmp_path) is None
    (tmp_path / "deskboot.yaml").write_text("")
    assert default_config_path(tmp_path) == tmp_path / "deskboot.yaml"


def test_config_as_dict_is_plain(tmp_path):
    d = config_as_dict(BootstrapConfig(home=tmp_path))
    assert d["home"] == str(tmp_path)
    assert d["dotfiles_dir"] == str(tmp_path / ".dotfiles")
    assert isinstance(d["flatpak_apps"], list)
