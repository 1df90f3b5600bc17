"""Pydantic v2 models for the raw kubeconfig document and the resolved output."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kubeconfig_resolver.errors import AuthInfoNotFoundError
from kubeconfig_resolver.utils import format_expiry


class _KubeModel(BaseModel):
    """Accepts both kubeconfig key names and snake_case names.

    Unknown keys are kept so a refreshed document is written back without losing
    anything this package does not interpret (exec plugins, preferences, ...).
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")


# --- Clusters ---


class Cluster(_KubeModel):
    """Endpoint and TLS trust material for one cluster."""

    server: str = ""
    certificate_authority: str | None = Field(default=None, alias="certificate-authority")
    certificate_authority_data: str | None = Field(default=None, alias="certificate-authority-data")
    insecure_skip_tls_verify: bool | None = Field(default=None, alias="insecure-skip-tls-verify")


class NamedCluster(_KubeModel):
    name: str
    cluster: Cluster = Field(default_factory=Cluster)


# --- Auth infos ---


class AuthProviderConfig(_KubeModel):
    """External credential provider descriptor: a name plus opaque string settings."""

    name: str
    config: dict[str, str] = Field(default_factory=dict)

    @field_validator("config", mode="before")
    @classmethod
    def _stringify_values(cls, value: Any) -> Any:
        # YAML turns unquoted expiry values into datetimes; keep everything a string.
        if not isinstance(value, dict):
            return value if value is not None else {}
        result: dict[str, str] = {}
        for key, item in value.items():
            if isinstance(item, datetime):
                result[str(key)] = format_expiry(item)
            elif isinstance(item, bool):
                result[str(key)] = str(item).lower()
            else:
                result[str(key)] = "" if item is None else str(item)
        return result


class AuthInfo(_KubeModel):
    """Credential expressions for one user. Several may co-occur in a document."""

    client_certificate: str | None = Field(default=None, alias="client-certificate")
    client_certificate_data: str | None = Field(default=None, alias="client-certificate-data")
    client_key: str | None = Field(default=None, alias="client-key")
    client_key_data: str | None = Field(default=None, alias="client-key-data")
    token: str | None = None
    token_file: str | None = Field(default=None, alias="tokenFile")
    username: str | None = None
    password: str | None = None
    auth_provider: AuthProviderConfig | None = Field(default=None, alias="auth-provider")


class NamedAuthInfo(_KubeModel):
    name: str
    auth_info: AuthInfo = Field(default_factory=AuthInfo, alias="user")


# --- Contexts ---


class Context(_KubeModel):
    """Pairs a cluster with an optional auth-info. No auth-info means anonymous."""

    cluster: str = ""
    auth_info: str = Field(default="", alias="user")
    namespace: str | None = None


class NamedContext(_KubeModel):
    name: str
    context: Context = Field(default_factory=Context)


# --- Document ---


class RawConfig(_KubeModel):
    """In-memory kubeconfig document.

    Lookups return the first entry with a matching name; duplicate names are not
    rejected.
    """

    current_context: str = Field(default="", alias="current-context")
    clusters: list[NamedCluster] = Field(default_factory=list)
    contexts: list[NamedContext] = Field(default_factory=list)
    auth_infos: list[NamedAuthInfo] = Field(default_factory=list, alias="users")

    @field_validator("clusters", "contexts", "auth_infos", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("current_context", mode="before")
    @classmethod
    def _none_as_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    def get_context(self, name: str) -> Context | None:
        for entry in self.contexts:
            if entry.name == name:
                return entry.context
        return None

    def get_cluster(self, name: str) -> Cluster | None:
        for entry in self.clusters:
            if entry.name == name:
                return entry.cluster
        return None

    def get_auth_info(self, name: str) -> AuthInfo | None:
        for entry in self.auth_infos:
            if entry.name == name:
                return entry.auth_info
        return None

    def to_document(self) -> dict[str, Any]:
        """Return the document as a plain dict using kubeconfig key names."""
        return self.model_dump(by_alias=True, exclude_none=True)


def set_auth_info_with_name(auth_infos: list[NamedAuthInfo], name: str, auth_info: AuthInfo) -> None:
    """Replace the auth-info stored under ``name`` in place.

    Raises:
        AuthInfoNotFoundError: If no entry carries that name.
    """
    for entry in auth_infos:
        if entry.name == name:
            entry.auth_info = auth_info
            return
    msg = f"auth info {name!r} not found"
    raise AuthInfoNotFoundError(msg)


# --- Output ---


@dataclass(frozen=True)
class ResolvedClientConfig:
    """Connection parameters produced by one resolution cycle.

    The authorization header value and the client key are kept out of ``repr`` so
    the config can be logged safely.
    """

    base_path: str
    host: str
    scheme: str
    authorization: str = field(default="", repr=False)
    ca_cert: bytes = field(default=b"", repr=False)
    client_cert: bytes = field(default=b"", repr=False)
    client_key: bytes = field(default=b"", repr=False)
    skip_tls_verify: bool = False

    @property
    def has_authorization(self) -> bool:
        return bool(self.authorization)
