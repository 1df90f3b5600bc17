"""Adapters from a resolved client config to a Kubernetes API client."""

from __future__ import annotations

import atexit
import os
import tempfile
from pathlib import Path

import structlog
from kubernetes import client as k8s_client

from kubeconfig_resolver.loader import KubeConfigLoader
from kubeconfig_resolver.models import ResolvedClientConfig

log = structlog.get_logger()

# TLS material is handed to the client as file paths; one file per distinct content.
_temp_files: dict[bytes, str] = {}


def _cleanup_temp_files() -> None:
    for path in _temp_files.values():
        try:
            os.remove(path)
        except OSError:
            log.debug("temp_file_already_removed", path=path)
    _temp_files.clear()


def _temp_file_with_content(content: bytes) -> str:
    if not _temp_files:
        atexit.register(_cleanup_temp_files)
    if content not in _temp_files:
        with tempfile.NamedTemporaryFile(delete=False, suffix=".kubeconfig-resolver") as f:
            f.write(content)
        _temp_files[content] = f.name
    return _temp_files[content]


def new_api_client(resolved: ResolvedClientConfig) -> k8s_client.ApiClient:
    """Build an isolated ApiClient from a resolved config.

    Nothing is written to the SDK's process-wide default configuration, so
    clients for different clusters can be used side by side.
    """
    configuration = k8s_client.Configuration()
    configuration.host = resolved.base_path
    if resolved.authorization:
        configuration.api_key["authorization"] = resolved.authorization
    if resolved.ca_cert:
        configuration.ssl_ca_cert = _temp_file_with_content(resolved.ca_cert)
    if resolved.client_cert and resolved.client_key:
        configuration.cert_file = _temp_file_with_content(resolved.client_cert)
        configuration.key_file = _temp_file_with_content(resolved.client_key)
    configuration.verify_ssl = not resolved.skip_tls_verify
    return k8s_client.ApiClient(configuration=configuration)


def load_k8s_api_client(context: str | None = None, config_file: str | Path | None = None) -> k8s_client.ApiClient:
    """Create an isolated Kubernetes API client for the given kubeconfig context."""
    loader = KubeConfigLoader.from_file(config_file)
    resolved = loader.resolve(context)
    log.info("api_client_created", context=loader.active_context, host=resolved.host)
    return new_api_client(resolved)
