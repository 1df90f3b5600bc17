"""Resolve a kubeconfig context into concrete client connection parameters.

Applications embedding the resolver can call ``configure_logging`` to set up the
structlog output used by its events.
"""

from __future__ import annotations

from kubeconfig_resolver.errors import (
    AuthInfoNotFoundError,
    ClusterNotFoundError,
    ContextNotFoundError,
    DataOrFileNotFoundError,
    InvalidEncodingError,
    InvalidServerError,
    KubeConfigError,
    PersistenceError,
)
from kubeconfig_resolver.loader import KubeConfigLoader
from kubeconfig_resolver.logging_setup import configure_logging
from kubeconfig_resolver.models import RawConfig, ResolvedClientConfig
from kubeconfig_resolver.providers import EXPIRY_SKEW_PREVENTION_DELAY, CredentialProvider, Token

__all__ = [
    "EXPIRY_SKEW_PREVENTION_DELAY",
    "AuthInfoNotFoundError",
    "ClusterNotFoundError",
    "ContextNotFoundError",
    "CredentialProvider",
    "DataOrFileNotFoundError",
    "InvalidEncodingError",
    "InvalidServerError",
    "KubeConfigError",
    "KubeConfigLoader",
    "PersistenceError",
    "RawConfig",
    "ResolvedClientConfig",
    "Token",
    "configure_logging",
]
