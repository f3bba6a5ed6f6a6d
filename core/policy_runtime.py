"""Configuration and runtime policy bootstrapping."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

# env var -> (config path, converter)
ENV_OVERRIDES: dict[str, tuple[tuple[str, ...], Any]] = {
    "OLLAMA_MODEL": (("models", "llm", "providers", "ollama", "model"), str),
    "OLLAMA_HOST": (("models", "llm", "providers", "ollama", "host"), str),
    "OLLAMA_PORT": (("models", "llm", "providers", "ollama", "port"), int),
    "MIN_CONFIDENCE_THRESHOLD": (("assistant", "min_confidence_threshold"), float),
    "NA_LOG_LEVEL": (("logging", "level"), str),
}


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML from file, returning empty mapping when missing."""
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return data


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge dictionaries."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def apply_env_overrides(config: dict[str, Any], environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Return a copy of ``config`` with recognised environment variables applied."""
    environ = os.environ if environ is None else environ
    result = config
    for env_name, (path, convert) in ENV_OVERRIDES.items():
        raw = environ.get(env_name)
        if raw is None or raw == "":
            continue
        try:
            value = convert(raw)
        except ValueError as exc:
            raise ValueError(f"Invalid value for {env_name}: {raw!r}") from exc
        override: dict[str, Any] = {path[-1]: value}
        for key in reversed(path[:-1]):
            override = {key: override}
        result = merge_dicts(result, override)
    return result


def ensure_runtime_dirs(root: Path, config: dict[str, Any]) -> dict[str, Path]:
    """Ensure workspace and log directories exist and return resolved paths."""
    paths_cfg = config.get("paths", {})
    workspace_dir = (root / paths_cfg.get("workspace_dir", "workspace")).resolve()
    db_path = (root / paths_cfg.get("db_path", "workspace/memory.db")).resolve()
    audit_log_path = (root / paths_cfg.get("audit_log_path", "logs/audit.jsonl")).resolve()
    log_dir = (root / paths_cfg.get("log_dir", "logs")).resolve()
    system_info_path = (root / paths_cfg.get("system_info_path", "workspace/system_info.json")).resolve()

    workspace_dir.mkdir(parents=True, exist_ok=True)
    log_dir.mkdir(parents=True, exist_ok=True)
    for path in (db_path, audit_log_path, system_info_path):
        path.parent.mkdir(parents=True, exist_ok=True)

    return {
        "workspace_dir": workspace_dir,
        "db_path": db_path,
        "audit_log_path": audit_log_path,
        "log_dir": log_dir,
        "system_info_path": system_info_path,
    }


def load_effective_config(root: Path, environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Load and merge all runtime configuration files, then environment overrides."""
    config_dir = root / "config"
    default_cfg = load_yaml(config_dir / "default.yaml")
    models_cfg = load_yaml(config_dir / "models.yaml")

    merged = merge_dicts(default_cfg, {"models": models_cfg})
    return apply_env_overrides(merged, environ)
