from __future__ import annotations

"""Toolchain steps: Rust (rustup), Node (fnm, latest LTS), Neovim (built from the latest tag).

CONTRACT
- Inputs: BootstrapConfig (home, profile path)
- Outputs (required):
  - Steps: rust.rustup (fatal), rust.components, node.fnm (fatal), node.lts, neovim.build
- Invariants:
  - Third-party installers run only when their binary is absent
  - Neovim is rebuilt only when the installed version differs from the latest release tag
  - Profile lines are appended at most once
- Failure:
  - Raises CommandFailed/StepFailed from apply actions
"""

import os
import re
from pathlib import Path

from loguru import logger

from ..config import BootstrapConfig
from ..errors import StepFailed
from ..util.paths import ensure_dir, ensure_line
from ..util.shell import check_cmd, run_cmd, sudo, which
from .base import Step
from .pkg import apt_install

RUSTUP_URL = "https://sh.rustup.rs"
FNM_INSTALL_URL = "https://fnm.vercel.app/install"
NEOVIM_REPO = "https://github.com/neovim/neovim"
NEOVIM_BUILD_DEPS = ("ninja-build", "gettext", "cmake", "unzip", "curl", "build-essential", "ccache")

_VERSION_RE = re.compile(r"v?(\d+)\.(\d+)\.(\d+)")
_TAG_RE = re.compile(r"refs/tags/(v\d+\.\d+\.\d+)$")


def parse_version(text: str) -> tuple[int, int, int] | None:
    m = _VERSION_RE.search(text)
    return (int(m.group(1)), int(m.group(2)), int(m.group(3))) if m else None


# --- rust -------------------------------------------------------------------


def rustup_bin(cfg: BootstrapConfig) -> str | None:
    found = which("rustup")
    if found:
        return found
    local = cfg.home / ".cargo" / "bin" / "rustup"
    return str(local) if local.exists() else None


def _install_rustup(cfg: BootstrapConfig) -> None:
    script = check_cmd(["curl", "--proto", "=https", "--tlsv1.2", "-sSf", RUSTUP_URL]).stdout
    check_cmd(["sh", "-s", "--", "-y"], input_text=script)
    ensure_line(cfg.profile_path(), '. "$HOME/.cargo/env"', marker=".cargo/env")


def _rust_components_ready(cfg: BootstrapConfig) -> bool:
    rustup = rustup_bin(cfg)
    if rustup is None:
        return False
    default = run_cmd([rustup, "default"], timeout_s=30)
    if not default.ok or not default.stdout.startswith("stable"):
        return False
    comps = run_cmd([rustup, "component", "list", "--installed"], timeout_s=30)
    return comps.ok and any(c.startswith("rust-analyzer") for c in comps.stdout.split())


def _install_rust_components(cfg: BootstrapConfig) -> None:
    rustup = rustup_bin(cfg)
    if rustup is None:
        raise StepFailed("rustup not found")
    check_cmd([rustup, "default", "stable"])
    check_cmd([rustup, "component", "add", "rust-analyzer"])


def rust_steps(cfg: BootstrapConfig) -> list[Step]:
    return [
        Step(
            name="rust.rustup",
            description="Rust toolchain via rustup",
            check=lambda: rustup_bin(cfg) is not None,
            apply=lambda: _install_rustup(cfg),
            fatal=True,
        ),
        Step(
            name="rust.components",
            description="stable default + rust-analyzer",
            check=lambda: _rust_components_ready(cfg),
            apply=lambda: _install_rust_components(cfg),
        ),
    ]


# --- node -------------------------------------------------------------------


def fnm_dir(cfg: BootstrapConfig) -> Path:
    return cfg.home / ".local" / "share" / "fnm"


def fnm_bin(cfg: BootstrapConfig) -> str | None:
    local = fnm_dir(cfg) / "fnm"
    if local.exists():
        return str(local)
    return which("fnm")


def _install_fnm(cfg: BootstrapConfig) -> None:
    script = check_cmd(["curl", "-fsSL", FNM_INSTALL_URL]).stdout
    check_cmd(
        ["bash", "-s", "--", "--install-dir", str(fnm_dir(cfg)), "--skip-shell"],
        input_text=script,
    )
    ensure_line(
        cfg.profile_path(),
        'export PATH="$HOME/.local/share/fnm:$PATH"',
        marker="HOME/.local/share/fnm",
    )
    ensure_line(cfg.profile_path(), 'eval "$(fnm env --use-on-cd --shell bash)"', marker="fnm env")


def latest_lts(fnm: str) -> str | None:
    res = run_cmd([fnm, "list-remote", "--lts", "--latest"], timeout_s=60)
    if not res.ok:
        return None
    version = res.stdout.replace("*", "").split()
    return version[0] if version else None


def installed_node_versions(fnm: str) -> list[tuple[str, bool]]:
    """(version, is_default) for each installed Node version."""
    res = run_cmd([fnm, "list"], timeout_s=30)
    out: list[tuple[str, bool]] = []
    if not res.ok:
        return out
    for line in res.stdout.splitlines():
        m = re.search(r"(v\d+\.\d+\.\d+)", line)
        if m:
            out.append((m.group(1), "default" in line))
    return out


def _node_lts_ready(cfg: BootstrapConfig) -> bool:
    fnm = fnm_bin(cfg)
    if fnm is None:
        return False
    lts = latest_lts(fnm)
    if lts is None:
        return False
    return (lts, True) in installed_node_versions(fnm)


def _install_node_lts(cfg: BootstrapConfig) -> None:
    fnm = fnm_bin(cfg)
    if fnm is None:
        raise StepFailed("fnm not found")
    version = latest_lts(fnm)
    if version is None:
        logger.warning("Could not resolve latest LTS; installing --lts and selecting newest installed.")
        check_cmd([fnm, "install", "--lts"])
        installed = [v for v, _ in installed_node_versions(fnm)]
        if not installed:
            raise StepFailed("no Node version installed after `fnm install --lts`")
        version = max(installed, key=lambda v: parse_version(v) or (0, 0, 0))
    check_cmd([fnm, "install", version])
    check_cmd([fnm, "default", version])
    if not run_cmd([fnm, "exec", "--using", version, "corepack", "enable"]).ok:
        logger.warning(f"corepack enable failed for Node {version}")


def node_steps(cfg: BootstrapConfig) -> list[Step]:
    return [
        Step(
            name="node.fnm",
            description="fnm (Node version manager)",
            check=lambda: fnm_bin(cfg) is not None,
            apply=lambda: _install_fnm(cfg),
            fatal=True,
        ),
        Step(
            name="node.lts",
            description="latest Node LTS as default + corepack",
            check=lambda: _node_lts_ready(cfg),
            apply=lambda: _install_node_lts(cfg),
        ),
    ]


# --- neovim -----------------------------------------------------------------


def latest_neovim_tag() -> str | None:
    res = run_cmd(["git", "ls-remote", "--tags", "--refs", NEOVIM_REPO], timeout_s=60)
    if not res.ok:
        return None
    tags = [m.group(1) for m in (_TAG_RE.search(line) for line in res.stdout.splitlines()) if m]
    if not tags:
        return None
    return max(tags, key=lambda t: parse_version(t) or (0, 0, 0))


def installed_neovim_version() -> tuple[int, int, int] | None:
    if which("nvim") is None:
        return None
    res = run_cmd(["nvim", "--version"], timeout_s=10)
    if not res.ok or not res.stdout:
        return None
    first = res.stdout.splitlines()[0]
    return parse_version(first) if first.startswith("NVIM v") else None


def _neovim_current() -> bool:
    installed = installed_neovim_version()
    if installed is None:
        return False
    tag = latest_neovim_tag()
    return tag is not None and parse_version(tag) == installed


def neovim_src(cfg: BootstrapConfig) -> Path:
    return cfg.home / ".local" / "src" / "neovim"


def _build_neovim(cfg: BootstrapConfig) -> None:
    tag = latest_neovim_tag()
    if tag is None:
        raise StepFailed("could not resolve the latest Neovim release tag")

    apt_install(NEOVIM_BUILD_DEPS)
    ccache_dir = cfg.home / ".cache" / "ccache"
    ensure_dir(ccache_dir)
    src = neovim_src(cfg)
    ensure_dir(src.parent)

    if not (src / ".git").is_dir():
        check_cmd(["git", "clone", "--depth", "1", NEOVIM_REPO, str(src)])
    check_cmd(["git", "-C", str(src), "fetch", "--tags", "--force", "origin"])

    was = installed_neovim_version()
    logger.info(f"Updating Neovim to {tag} (was: {'.'.join(map(str, was)) if was else 'none'})")
    check_cmd(["git", "-C", str(src), "checkout", "-f", tag])

    env = {"CCACHE_DIR": str(ccache_dir), "CC": "ccache gcc", "CXX": "ccache g++"}
    check_cmd(
        ["make", "-C", str(src), "CMAKE_BUILD_TYPE=RelWithDebInfo", f"-j{os.cpu_count() or 1}"],
        env=env,
    )
    check_cmd(sudo("make", "-C", str(src), "install"))


def neovim_step(cfg: BootstrapConfig) -> Step:
    return Step(
        name="neovim.build",
        description="Neovim at the latest stable tag (rebuild only when needed)",
        check=_neovim_current,
        apply=lambda: _build_neovim(cfg),
    )
