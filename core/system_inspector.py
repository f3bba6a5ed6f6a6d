"""System inspection helpers: host facts the planner uses to pick commands."""

from __future__ import annotations

import getpass
import json
import os
import platform
import shutil
import socket
import sys
from pathlib import Path
from typing import Any

COMMON_TOOLS: dict[str, tuple[str, ...]] = {
    "languages": ("python3", "node", "java", "go", "rustc", "ruby", "php"),
    "package_managers": ("pip", "pip3", "npm", "yarn", "pnpm", "conda", "brew", "apt", "dnf"),
    "version_control": ("git",),
    "containerization": ("docker", "podman", "kubectl"),
    "databases": ("sqlite3", "psql", "mysql", "redis-cli"),
    "editors": ("code", "vim", "nano"),
    "utilities": ("curl", "wget", "tar", "zip", "unzip"),
}


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


def inspect_system() -> dict[str, Any]:
    """Return lightweight host information."""
    tools = {
        category: sorted(name for name in names if shutil.which(name))
        for category, names in COMMON_TOOLS.items()
    }
    return {
        "platform": platform.platform(),
        "system": platform.system(),
        "release": platform.release(),
        "machine": platform.machine(),
        "python_version": sys.version.split()[0],
        "shell": os.environ.get("SHELL") or os.environ.get("COMSPEC") or "unknown",
        "home": str(Path.home()),
        "cwd": str(Path.cwd()),
        "hostname": socket.gethostname(),
        "user": _current_user(),
        "tools": tools,
    }


def write_system_document(path: Path, info: dict[str, Any] | None = None) -> dict[str, Any]:
    """Persist the inspection result as JSON and return it."""
    info = info if info is not None else inspect_system()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(info, indent=2, ensure_ascii=False), encoding="utf-8")
    return info


def describe_system(info: dict[str, Any]) -> str:
    """Render a short text block for planner prompts."""
    lines = [
        f"OS: {info.get('system', 'unknown')} {info.get('release', '')} ({info.get('machine', '')})".rstrip(),
        f"Shell: {info.get('shell', 'unknown')}",
        f"User: {info.get('user', 'unknown')} (home: {info.get('home', '~')})",
        f"Working directory: {info.get('cwd', '.')}",
    ]
    available = [name for names in (info.get("tools") or {}).values() for name in names]
    if available:
        lines.append(f"Available tools: {', '.join(available)}")
    return "\n".join(lines)
