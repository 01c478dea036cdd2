import unittest
from unittest.mock import patch

import deskboot
from deskboot.config import BootstrapConfig
from deskboot.errors import StepFailed
from deskboot.steps.base import Step


def _fail():
    raise StepFailed("boom")


class TestPublicAPI(unittest.TestCase):
    def setUp(self):
        self.cfg = BootstrapConfig(dotfiles_repo="https://example.com/me/dotfiles.git", user="tester")
        self.steps = [
            Step(name="sanity.sudo", check=lambda: True, apply=lambda: None),
            Step(name="gnome.settings", check=lambda: False, apply=_fail),
            Step(name="docker.engine", check=lambda: False, apply=lambda: None, fatal=True),
        ]

    def test_bootstrap_return_keys(self):
        with patch("deskboot.build_steps", return_value=self.steps):
            result = deskboot.bootstrap(self.cfg)
        self.assertEqual(result["status"], "OK")
        self.assertEqual(result["exit_code"], 0)
        self.assertEqual(result["warnings"], 1)
        self.assertIsNone(result["aborted"])
        self.assertEqual(len(result["steps"]), 3)

    def test_bootstrap_skip(self):
        with patch("deskboot.build_steps", return_value=self.steps):
            result = deskboot.bootstrap(self.cfg, skip=["gnome"])
        self.assertEqual([s["name"] for s in result["steps"]], ["sanity.sudo", "docker.engine"])
        self.assertEqual(result["warnings"], 0)

    def test_plan(self):
        with patch("deskboot.build_steps", return_value=self.steps):
            report = deskboot.plan(self.cfg, only=["docker"])
        self.assertEqual(report["pending"], 1)
        self.assertEqual([s["name"] for s in report["steps"]], ["sanity.sudo", "docker.engine"])


if __name__ == "__main__":
    unittest.main()
