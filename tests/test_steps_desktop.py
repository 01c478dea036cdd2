from unittest.mock import patch

import pytest

from deskboot.errors import StepFailed
from deskboot.steps.desktop import desktop_steps, gnome_settings


def _steps(cfg):
    return {s.name: s for s in desktop_steps(cfg)}


def test_gnome_settings_use_config(cfg):
    values = {(s.schema, s.key): s.value for s in gnome_settings(cfg)}
    assert values[("org.gnome.desktop.wm.preferences", "num-workspaces")] == "5"
    assert values[("org.gnome.desktop.interface", "monospace-font-name")] == "JetBrains Mono 12"
    assert values[("org.gnome.mutter", "dynamic-workspaces")] == "false"


def test_gnome_settings_missing_gsettings_warns(cfg):
    step = _steps(cfg)["gnome.settings"]
    assert not step.fatal
    with patch("deskboot.steps.desktop.which", return_value=None):
        assert step.check() is False
        with pytest.raises(StepFailed, match="gsettings not found"):
            step.apply()


def test_gnome_settings_only_changed_keys_written(cfg, cmd_result):
    step = _steps(cfg)["gnome.settings"]

    def matches(schema, key, value):
        return key != "num-workspaces"

    with patch("deskboot.steps.desktop.which", return_value="/usr/bin/gsettings"), \
         patch("deskboot.steps.desktop.gsettings_matches", side_effect=matches), \
         patch("deskboot.steps.desktop.run_cmd", return_value=cmd_result()) as mock_run:
        assert step.check() is False
        step.apply()
    mock_run.assert_called_once_with(
        ["gsettings", "set", "org.gnome.desktop.wm.preferences", "num-workspaces", "5"]
    )


def test_gnome_settings_tries_every_key(cfg, cmd_result):
    step = _steps(cfg)["gnome.settings"]
    with patch("deskboot.steps.desktop.which", return_value="/usr/bin/gsettings"), \
         patch("deskboot.steps.desktop.gsettings_matches", return_value=False), \
         patch("deskboot.steps.desktop.run_cmd", return_value=cmd_result(returncode=1)) as mock_run:
        with pytest.raises(StepFailed, match="could not set"):
            step.apply()
    assert mock_run.call_count == len(gnome_settings(cfg))


def test_alacritty_missing(cfg):
    step = _steps(cfg)["terminal.alacritty"]
    with patch("deskboot.steps.desktop.which", return_value=None):
        assert step.check() is False
        with pytest.raises(StepFailed, match="alacritty"):
            step.apply()


def test_alacritty_registers_alternative(cfg, cmd_result):
    step = _steps(cfg)["terminal.alacritty"]
    tools = {"alacritty": "/usr/bin/alacritty", "update-alternatives": "/usr/bin/update-alternatives"}
    with patch("deskboot.steps.desktop.which", side_effect=tools.get), \
         patch("deskboot.steps.desktop.run_cmd", return_value=cmd_result(stdout="/usr/bin/gnome-terminal.wrapper\n")), \
         patch("deskboot.steps.desktop.check_cmd", return_value=cmd_result()) as mock_check:
        step.apply()
    cmds = [c.args[0] for c in mock_check.call_args_list]
    assert cmds[0][:3] == ["sudo", "update-alternatives", "--install"]
    assert cmds[1] == ["sudo", "update-alternatives", "--set", "x-terminal-emulator", "/usr/bin/alacritty"]
    assert len(cmds) == 2


def test_alacritty_check_satisfied(cfg):
    step = _steps(cfg)["terminal.alacritty"]
    tools = {"alacritty": "/usr/bin/alacritty", "update-alternatives": "/usr/bin/update-alternatives"}
    with patch("deskboot.steps.desktop.which", side_effect=tools.get), \
         patch("deskboot.steps.desktop.alternative_value", return_value="/usr/bin/alacritty"):
        assert step.check() is True
