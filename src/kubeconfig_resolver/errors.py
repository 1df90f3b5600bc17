"""Exception taxonomy for kubeconfig resolution."""

from __future__ import annotations


class KubeConfigError(Exception):
    """Base class for every error raised while resolving a kubeconfig."""


class ContextNotFoundError(KubeConfigError):
    """The requested context is not defined in the document."""


class ClusterNotFoundError(KubeConfigError):
    """The active context references a cluster that is not defined."""


class AuthInfoNotFoundError(KubeConfigError):
    """The active context references an auth-info that is not defined."""


class InvalidEncodingError(KubeConfigError):
    """Inline credential material is not valid standard base64."""


class InvalidServerError(KubeConfigError):
    """The cluster server URL is missing or cannot be parsed."""


class DataOrFileNotFoundError(KubeConfigError):
    """Neither inline data nor a readable file could provide the material.

    ``field`` names the kubeconfig key (e.g. ``certificate-authority``) so the
    message tells cluster material apart from auth material.
    """

    def __init__(self, field: str, path: str, reason: str = "") -> None:
        self.field = field
        self.path = path
        msg = f"failed to get data or file for {field}: {path}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)


class PersistenceError(KubeConfigError):
    """Writing the refreshed document back to its store failed."""
