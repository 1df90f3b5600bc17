"""Kubeconfig loader: binds a context and resolves it into a client config."""

from __future__ import annotations

import base64
import functools
from collections.abc import Callable, Mapping
from pathlib import Path
from urllib.parse import urlsplit

import structlog

from kubeconfig_resolver.config import ResolverSettings, get_settings, load_raw_config, save_raw_config
from kubeconfig_resolver.errors import (
    AuthInfoNotFoundError,
    ClusterNotFoundError,
    ContextNotFoundError,
    InvalidServerError,
    PersistenceError,
)
from kubeconfig_resolver.material import data_or_file
from kubeconfig_resolver.models import (
    AuthInfo,
    AuthProviderConfig,
    Cluster,
    RawConfig,
    ResolvedClientConfig,
    set_auth_info_with_name,
)
from kubeconfig_resolver.providers import (
    EXPIRY_KEY,
    CredentialProvider,
    ProviderTokenResult,
    default_providers,
    refresh_provider_token,
)

log = structlog.get_logger()

Persister = Callable[[RawConfig], None]


class KubeConfigLoader:
    """Resolves one context of a kubeconfig document at a time.

    A resolution cycle is ``set_active_context`` followed by
    ``load_authentication`` and ``load_cluster_info``; ``client_config`` then
    returns the result. ``resolve`` runs the whole cycle. An instance holds a
    single active working set and must not be shared between threads.
    """

    def __init__(
        self,
        raw_config: RawConfig,
        *,
        providers: Mapping[str, CredentialProvider] | None = None,
        persister: Persister | None = None,
        skip_persist: bool = False,
        config_dir: str | Path | None = None,
    ) -> None:
        self._raw_config = raw_config
        if providers is None:
            providers = default_providers(get_settings().azure_scope)
        self._providers = dict(providers)
        self._persister = persister
        self._skip_persist = skip_persist
        self._config_dir = config_dir

        self._context_name: str | None = None
        self._cluster: Cluster | None = None
        self._auth_info_name: str = ""
        self._auth_info: AuthInfo | None = None
        self._reset_resolution()

    @classmethod
    def from_file(
        cls,
        path: str | Path | None = None,
        *,
        providers: Mapping[str, CredentialProvider] | None = None,
        skip_persist: bool | None = None,
        settings: ResolverSettings | None = None,
    ) -> KubeConfigLoader:
        """Load a kubeconfig file; refreshed tokens are written back to the same file.

        Relative certificate, key and token paths are resolved against the file's
        directory.
        """
        settings = settings or get_settings()
        config_path = Path(path or settings.kubeconfig_path).expanduser()
        raw_config = load_raw_config(config_path)
        if skip_persist is None:
            skip_persist = not settings.persist
        if providers is None:
            providers = default_providers(settings.azure_scope)
        return cls(
            raw_config,
            providers=providers,
            persister=functools.partial(save_raw_config, path=config_path),
            skip_persist=skip_persist,
            config_dir=config_path.parent,
        )

    def _reset_resolution(self) -> None:
        self._authorization = ""
        self._base_path = ""
        self._host = ""
        self._scheme = ""
        self._ca_cert = b""
        self._client_cert = b""
        self._client_key = b""
        self._skip_tls_verify = False
        self.authentication_error: Exception | None = None
        self.persistence_error: PersistenceError | None = None

    # --- Context selection ---

    @property
    def raw_config(self) -> RawConfig:
        return self._raw_config

    @property
    def current_context(self) -> str:
        return self._raw_config.current_context

    @property
    def active_context(self) -> str | None:
        return self._context_name

    def list_contexts(self) -> list[str]:
        return [entry.name for entry in self._raw_config.contexts]

    def set_active_context(self, name: str | None = None) -> None:
        """Bind the named context (default: ``current-context``) as the working set.

        Raises:
            ContextNotFoundError: If the context is not defined.
            ClusterNotFoundError: If the context names an undefined cluster.
            AuthInfoNotFoundError: If the context names an undefined auth-info.
        """
        name = name or self._raw_config.current_context
        if not name:
            msg = "no context given and current-context is not set"
            raise ContextNotFoundError(msg)

        context = self._raw_config.get_context(name)
        if context is None:
            msg = f"context {name!r} not found"
            raise ContextNotFoundError(msg)

        cluster = None
        if context.cluster:
            cluster = self._raw_config.get_cluster(context.cluster)
            if cluster is None:
                msg = f"cluster {context.cluster!r} referenced by context {name!r} not found"
                raise ClusterNotFoundError(msg)

        auth_info = None
        if context.auth_info:
            auth_info = self._raw_config.get_auth_info(context.auth_info)
            if auth_info is None:
                msg = f"auth info {context.auth_info!r} referenced by context {name!r} not found"
                raise AuthInfoNotFoundError(msg)

        self._reset_resolution()
        self._context_name = name
        self._cluster = cluster
        self._auth_info_name = context.auth_info
        self._auth_info = auth_info
        log.debug(
            "active_context_set",
            context=name,
            cluster=context.cluster or None,
            auth_info=context.auth_info or None,
        )

    # --- Authentication ---

    def load_authentication(self) -> None:
        """Populate the authorization value from the active auth-info.

        The first configured mode wins: auth-provider token, static token, then
        username/password. Errors never propagate; they leave the authorization
        empty and are kept on ``authentication_error``.
        """
        self._authorization = ""
        self.authentication_error = None
        if self._auth_info is None:
            return
        try:
            self._authorization = self._authorization_for(self._auth_info)
        except Exception as e:
            log.error(
                "failed_to_load_authentication",
                context=self._context_name,
                auth_info=self._auth_info_name,
                error=str(e),
            )
            self.authentication_error = e

    def _authorization_for(self, auth_info: AuthInfo) -> str:
        token = self._load_auth_provider_token(auth_info)
        if token:
            return f"Bearer {token}"

        token = self._load_user_token(auth_info)
        if token:
            return f"Bearer {token}"

        if auth_info.username and auth_info.password:
            credentials = f"{auth_info.username}:{auth_info.password}".encode()
            return f"Basic {base64.b64encode(credentials).decode()}"

        return ""

    def _load_auth_provider_token(self, auth_info: AuthInfo) -> str:
        provider_config = auth_info.auth_provider
        if provider_config is None:
            return ""

        provider = self._providers.get(provider_config.name)
        if provider is None:
            log.debug("auth_provider_not_registered", provider=provider_config.name)
            return ""

        result = refresh_provider_token(provider_config.config, provider)
        if result.dirty:
            self._apply_refresh(auth_info, provider_config, result)
        return result.access_token

    def _apply_refresh(
        self,
        auth_info: AuthInfo,
        provider_config: AuthProviderConfig,
        result: ProviderTokenResult,
    ) -> None:
        refreshed_provider = provider_config.model_copy(
            update={"config": {**provider_config.config, **result.config_updates}}
        )
        updated = auth_info.model_copy(update={"auth_provider": refreshed_provider})
        set_auth_info_with_name(self._raw_config.auth_infos, self._auth_info_name, updated)
        self._auth_info = updated
        log.info(
            "provider_token_refreshed",
            auth_info=self._auth_info_name,
            provider=provider_config.name,
            expiry=result.config_updates.get(EXPIRY_KEY),
        )
        self._persist()

    def _persist(self) -> None:
        if self._skip_persist or self._persister is None:
            log.debug("config_persist_skipped", auth_info=self._auth_info_name)
            return
        try:
            try:
                self._persister(self._raw_config)
            except Exception as e:
                log.error("failed_to_persist_config", auth_info=self._auth_info_name, error=str(e))
                msg = f"failed to persist refreshed kubeconfig: {e}"
                raise PersistenceError(msg) from e
        except PersistenceError as error:
            self.persistence_error = error

    def _load_user_token(self, auth_info: AuthInfo) -> str:
        raw = data_or_file(
            auth_info.token,
            auth_info.token_file,
            "tokenFile",
            decode_data=False,
            base_path=self._config_dir,
        )
        return raw.decode().strip()

    # --- Cluster info ---

    def load_cluster_info(self) -> None:
        """Resolve the endpoint and TLS material of the active context.

        Raises:
            ClusterNotFoundError: If the active context has no cluster.
            InvalidServerError: If the server URL is missing or malformed.
            DataOrFileNotFoundError: If a referenced CA, certificate or key file
                cannot be read.
            InvalidEncodingError: If inline TLS data is not valid base64.
        """
        cluster = self._cluster
        if cluster is None:
            msg = f"context {self._context_name!r} does not reference a cluster"
            raise ClusterNotFoundError(msg)

        server = cluster.server
        if not server:
            msg = f"cluster of context {self._context_name!r} has no server"
            raise InvalidServerError(msg)
        try:
            parts = urlsplit(server)
        except ValueError as e:
            msg = f"invalid server URL {server!r}: {e}"
            raise InvalidServerError(msg) from e
        if not parts.scheme or not parts.netloc:
            msg = f"invalid server URL {server!r}: scheme and host are required"
            raise InvalidServerError(msg)

        ca_cert = data_or_file(
            cluster.certificate_authority_data,
            cluster.certificate_authority,
            "certificate-authority",
            base_path=self._config_dir,
        )
        client_cert = b""
        client_key = b""
        if self._auth_info is not None:
            client_cert = data_or_file(
                self._auth_info.client_certificate_data,
                self._auth_info.client_certificate,
                "client-certificate",
                base_path=self._config_dir,
            )
            client_key = data_or_file(
                self._auth_info.client_key_data,
                self._auth_info.client_key,
                "client-key",
                base_path=self._config_dir,
            )

        self._scheme = parts.scheme
        self._host = parts.netloc.rpartition("@")[2]
        self._base_path = server.rstrip("/")
        self._ca_cert = ca_cert
        self._client_cert = client_cert
        self._client_key = client_key
        self._skip_tls_verify = bool(cluster.insecure_skip_tls_verify)

    # --- Output ---

    def client_config(self) -> ResolvedClientConfig:
        return ResolvedClientConfig(
            base_path=self._base_path,
            host=self._host,
            scheme=self._scheme,
            authorization=self._authorization,
            ca_cert=self._ca_cert,
            client_cert=self._client_cert,
            client_key=self._client_key,
            skip_tls_verify=self._skip_tls_verify,
        )

    def resolve(self, context: str | None = None) -> ResolvedClientConfig:
        """Run a full resolution cycle for ``context`` (default: current-context).

        Unlike ``load_authentication`` on its own, a recorded authentication error
        is raised here so the caller never receives an unauthenticated config for
        a context whose credential source failed.
        """
        self.set_active_context(context)
        self.load_authentication()
        self.load_cluster_info()
        if self.authentication_error is not None:
            raise self.authentication_error
        return self.client_config()
