from __future__ import annotations

"""UFW firewall step (deny in / allow out, optional SSH).

CONTRACT
- Inputs: BootstrapConfig (allow_ssh)
- Outputs (required):
  - Step firewall.ufw
- Invariants:
  - Satisfied only when ufw is enabled with the expected defaults and rules
  - Enabled state and default policies come from the world-readable
    /etc/ufw/ufw.conf and /etc/default/ufw, so the check needs no sudo
  - The SSH rule is read from /etc/ufw/user.rules; only when that file is
    not readable does the check fall back to `sudo ufw status` (may prompt)
  - Advisory: a machine without ufw still gets the rest of the setup
- Failure:
  - Raises CommandFailed when a ufw command fails
"""

import re
from pathlib import Path

from ..config import BootstrapConfig
from ..util.shell import check_cmd, run_cmd, sudo
from .base import Step
from .probes import read_env_file

SSH_RULE = "22/tcp"
UFW_CONF = Path("/etc/ufw/ufw.conf")
UFW_DEFAULTS = Path("/etc/default/ufw")
UFW_USER_RULES = Path("/etc/ufw/user.rules")

_SSH_TUPLE = re.compile(r"^### tuple ### allow tcp 22 ", re.MULTILINE)


def ufw_status() -> str:
    # Without -n: a cold sudo cache prompts instead of reporting "not converged".
    res = run_cmd(sudo("ufw", "status", "verbose"), timeout_s=120)
    return res.stdout if res.ok else ""


def ssh_allowed(status: str) -> bool:
    return any(line.startswith(SSH_RULE) and "ALLOW" in line for line in status.splitlines())


def ufw_files_converged(conf: Path, defaults: Path) -> bool:
    if read_env_file(conf).get("ENABLED") != "yes":
        return False
    policy = read_env_file(defaults)
    return (
        policy.get("DEFAULT_INPUT_POLICY") in ("DROP", "REJECT")
        and policy.get("DEFAULT_OUTPUT_POLICY") == "ACCEPT"
    )


def ssh_rule_present(rules: Path) -> bool:
    try:
        text = rules.read_text(encoding="utf-8")
    except PermissionError:
        return ssh_allowed(ufw_status())
    except OSError:
        return False
    return bool(_SSH_TUPLE.search(text))


def firewall_converged(allow_ssh: bool) -> bool:
    if not ufw_files_converged(UFW_CONF, UFW_DEFAULTS):
        return False
    return not allow_ssh or ssh_rule_present(UFW_USER_RULES)


def _configure_ufw(allow_ssh: bool) -> None:
    check_cmd(sudo("ufw", "default", "deny", "incoming"))
    check_cmd(sudo("ufw", "default", "allow", "outgoing"))
    if allow_ssh:
        check_cmd(sudo("ufw", "allow", SSH_RULE))
    check_cmd(sudo("ufw", "--force", "enable"))


def firewall_step(cfg: BootstrapConfig) -> Step:
    return Step(
        name="firewall.ufw",
        description="deny incoming, allow outgoing" + (", allow ssh" if cfg.allow_ssh else ""),
        check=lambda: firewall_converged(cfg.allow_ssh),
        apply=lambda: _configure_ufw(cfg.allow_ssh),
    )
