import pytest

from deskboot.config import BootstrapConfig
from deskboot.util.shell import CmdResult


@pytest.fixture
def cfg(tmp_path):
    home = tmp_path / "home"
    home.mkdir()
    return BootstrapConfig(
        dotfiles_repo="https://example.com/me/dotfiles.git",
        home=home,
        user="tester",
    )


def result(returncode=0, stdout="", stderr="", cmd="cmd"):
    return CmdResult(cmd=cmd, returncode=returncode, stdout=stdout, stderr=stderr, elapsed_s=0.0)


@pytest.fixture
def cmd_result():
    return result
