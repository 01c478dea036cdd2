from unittest.mock import MagicMock, patch

from deskboot.steps.pkg import APT_ENV, apt_get, apt_install, autoremove_candidates
from deskboot.util.shell import CmdResult, run_cmd


def test_run_cmd_list_mode(tmp_path):
    """Test that run_cmd with a list arg uses shell=False."""
    with patch("subprocess.run") as mock_run:
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")

        cmd = ["ls", "-l"]
        run_cmd(cmd, tmp_path)

        args, kwargs = mock_run.call_args
        assert args[0] == cmd
        assert kwargs["shell"] is False
        assert kwargs["cwd"] == str(tmp_path)


def test_run_cmd_str_mode_uses_shell(tmp_path):
    with patch("subprocess.run") as mock_run:
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        run_cmd("echo hi | cat", tmp_path)
        _, kwargs = mock_run.call_args
        assert kwargs["shell"] is True


def test_apt_get_is_noninteractive():
    cmd = apt_get("install", "-y", "git")
    assert cmd[:3] == ["sudo", APT_ENV, "apt-get"]
    assert cmd[-1] == "git"


def test_apt_install_passes_all_packages():
    ok = CmdResult(cmd="", returncode=0, stdout="", stderr="", elapsed_s=0)
    with patch("deskboot.steps.pkg.check_cmd", return_value=ok) as mock_check:
        apt_install(["git", "curl"])
    (cmd,), _ = mock_check.call_args
    assert cmd[-3:] == ["-y", "git", "curl"]


def test_autoremove_candidates_parses_simulation():
    out = "Reading package lists...\nRemv libfoo1 [1.0]\nRemv libbar2 [2.0]\n"
    res = CmdResult(cmd="", returncode=0, stdout=out, stderr="", elapsed_s=0)
    with patch("deskboot.steps.pkg.run_cmd", return_value=res):
        assert autoremove_candidates() == ["libfoo1", "libbar2"]


def test_autoremove_candidates_unknown_on_error():
    res = CmdResult(cmd="", returncode=100, stdout="", stderr="E: lock", elapsed_s=0)
    with patch("deskboot.steps.pkg.run_cmd", return_value=res):
        assert autoremove_candidates() is None
