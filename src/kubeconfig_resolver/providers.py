"""External auth-provider bridge: capability contract and expiry-aware refresh."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

import structlog
from azure.identity import DefaultAzureCredential

from kubeconfig_resolver.utils import format_expiry, parse_expiry

log = structlog.get_logger()

# Tokens are refreshed this long before their recorded expiry.
EXPIRY_SKEW_PREVENTION_DELAY = timedelta(minutes=5)

ACCESS_TOKEN_KEY = "access-token"
EXPIRY_KEY = "expiry"

AZURE_PROVIDER_NAME = "azure"


@dataclass(frozen=True)
class Token:
    """A short-lived access token and the moment it stops being valid."""

    access_token: str = field(repr=False)
    expiry: datetime


class CredentialProvider(Protocol):
    """Source of fresh credentials for an ``auth-provider`` entry."""

    def get_credentials(self) -> Token: ...


@dataclass(frozen=True)
class ProviderTokenResult:
    """Outcome of the refresh decision.

    ``dirty`` is set when a new token was fetched; ``config_updates`` then holds the
    provider config keys the caller must write back before persisting.
    """

    access_token: str = field(repr=False)
    dirty: bool = False
    config_updates: dict[str, str] = field(default_factory=dict, repr=False)


def token_needs_refresh(config: Mapping[str, str], now: datetime | None = None) -> bool:
    """Return True when the stored token is absent, expired or inside the skew window.

    A missing or unparseable expiry counts as expired.
    """
    if not config.get(ACCESS_TOKEN_KEY):
        return True
    raw_expiry = config.get(EXPIRY_KEY)
    expiry = parse_expiry(raw_expiry)
    if expiry is None:
        if raw_expiry:
            log.warning("unparseable_provider_expiry", expiry=raw_expiry)
        return True
    now = now or datetime.now(tz=UTC)
    return now + EXPIRY_SKEW_PREVENTION_DELAY >= expiry


def refresh_provider_token(
    config: Mapping[str, str],
    provider: CredentialProvider,
    now: datetime | None = None,
) -> ProviderTokenResult:
    """Return the usable access token for a provider config, refreshing if needed.

    The config is never modified here. Errors raised by the provider propagate
    unchanged; the stale token is never returned in their place.
    """
    if not token_needs_refresh(config, now):
        return ProviderTokenResult(access_token=config[ACCESS_TOKEN_KEY])

    token = provider.get_credentials()
    return ProviderTokenResult(
        access_token=token.access_token,
        dirty=True,
        config_updates={
            ACCESS_TOKEN_KEY: token.access_token,
            EXPIRY_KEY: format_expiry(token.expiry),
        },
    )


class AzureIdentityProvider:
    """Exchanges the ambient Azure identity for a cluster API access token."""

    def __init__(self, scope: str) -> None:
        self._scope = scope
        # Created on first use.
        self._credential: DefaultAzureCredential | None = None

    def _get_credential(self) -> DefaultAzureCredential:
        if self._credential is None:
            self._credential = DefaultAzureCredential()
        return self._credential

    def get_credentials(self) -> Token:
        try:
            access_token = self._get_credential().get_token(self._scope)
        except Exception:
            log.error("failed_to_get_azure_token", scope=self._scope)
            raise
        return Token(
            access_token=access_token.token,
            expiry=datetime.fromtimestamp(access_token.expires_on, tz=UTC),
        )


def default_providers(azure_scope: str) -> dict[str, CredentialProvider]:
    """Providers wired in production, keyed by ``auth-provider`` name."""
    return {AZURE_PROVIDER_NAME: AzureIdentityProvider(azure_scope)}
