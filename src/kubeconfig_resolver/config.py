"""Resolver settings, environment variable overrides, and kubeconfig file I/O."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from kubeconfig_resolver.models import RawConfig

DEFAULT_KUBECONFIG = "~/.kube/config"

# Application ID of the AKS AAD server, shared by every managed AAD cluster.
DEFAULT_AZURE_SCOPE = "6dae42f8-4368-4678-94ff-3960e28e3630/.default"

_FALSE_VALUES = {"0", "false", "no", "off"}


def _first_kubeconfig_path() -> str:
    paths = [p for p in os.environ.get("KUBECONFIG", "").split(os.pathsep) if p]
    return paths[0] if paths else DEFAULT_KUBECONFIG


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() not in _FALSE_VALUES


@dataclass(frozen=True)
class ResolverSettings:
    """Resolver settings with environment variable overrides."""

    kubeconfig_path: str = field(default_factory=_first_kubeconfig_path)
    persist: bool = field(default_factory=lambda: _env_flag("KUBECONFIG_RESOLVER_PERSIST", True))
    azure_scope: str = field(
        default_factory=lambda: os.environ.get("KUBECONFIG_RESOLVER_AZURE_SCOPE", DEFAULT_AZURE_SCOPE)
    )


def get_settings() -> ResolverSettings:
    """Return resolver settings with environment variable overrides applied."""
    return ResolverSettings()


def load_raw_config(path: str | Path) -> RawConfig:
    """Parse a kubeconfig YAML file into a RawConfig.

    Args:
        path: Path to the kubeconfig file.

    Returns:
        The validated document.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is empty or not a mapping.
    """
    path = Path(path).expanduser()
    if not path.exists():
        msg = f"Kubeconfig file not found: {path}. Set KUBECONFIG to point to your config file."
        raise FileNotFoundError(msg)

    raw: Any = yaml.safe_load(path.read_text())
    if raw is None:
        msg = f"Kubeconfig file {path} is empty."
        raise ValueError(msg)
    if not isinstance(raw, dict):
        msg = f"Kubeconfig file {path} must contain a mapping, got {type(raw).__name__}."
        raise ValueError(msg)

    return RawConfig.model_validate(raw)


def save_raw_config(raw_config: RawConfig, path: str | Path) -> None:
    """Write the whole document back to ``path`` using kubeconfig key names."""
    path = Path(path).expanduser()
    path.write_text(yaml.safe_dump(raw_config.to_document(), default_flow_style=False, sort_keys=False))
