"""Shared test fixtures: the reference kubeconfig document and fake providers."""

from __future__ import annotations

import base64
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from kubeconfig_resolver.models import RawConfig
from kubeconfig_resolver.providers import EXPIRY_SKEW_PREVENTION_DELAY, Token
from kubeconfig_resolver.utils import format_expiry

TEST_DATA = "test-data"
TEST_ANOTHER_DATA = "test-another-data"

TEST_SERVER = "http://test-server"
TEST_SSL_SERVER = "https://test-server"
TEST_USERNAME = "me"
TEST_PASSWORD = "pass"

# token for me:pass
TEST_BASIC_TOKEN = "Basic bWU6cGFzcw=="

TEST_CERT_AUTH = b"cert-auth"
TEST_CLIENT_CERT = b"client-cert"
TEST_CLIENT_KEY = b"client-key"

# always in the past
TEST_TOKEN_EXPIRY = "2000-01-01 12:00:00"


def b64(value: str | bytes) -> str:
    raw = value.encode() if isinstance(value, str) else value
    return base64.b64encode(raw).decode()


TEST_DATA_BASE64 = b64(TEST_DATA)
TEST_ANOTHER_DATA_BASE64 = b64(TEST_ANOTHER_DATA)


def no_expiry() -> str:
    """An expiry far enough ahead that the skew window never triggers a refresh."""
    return format_expiry(datetime.now(tz=UTC) + 2 * EXPIRY_SKEW_PREVENTION_DELAY)


class FakeProvider:
    """Returns a fresh token and counts how often it was asked."""

    def __init__(self, access_token: str = TEST_ANOTHER_DATA_BASE64) -> None:
        self.access_token = access_token
        self.expiry = (datetime.now(tz=UTC) + timedelta(hours=1)).replace(microsecond=0)
        self.calls = 0

    def get_credentials(self) -> Token:
        self.calls += 1
        return Token(access_token=self.access_token, expiry=self.expiry)


class NoRefreshProvider:
    """Fails the test if a refresh is attempted."""

    def get_credentials(self) -> Token:
        pytest.fail("provider should not be called")


class FailingProvider:
    def get_credentials(self) -> Token:
        msg = "token exchange rejected"
        raise RuntimeError(msg)


def kube_config_document() -> dict[str, Any]:
    """The reference document, in kubeconfig file layout."""
    return {
        "current-context": "no_user",
        "contexts": [
            {"name": "no_user", "context": {"cluster": "default"}},
            {"name": "non_existing_user", "context": {"cluster": "default", "user": "non_existing_user"}},
            {"name": "non_existing_cluster", "context": {"cluster": "missing", "user": "simple_token"}},
            {"name": "no_cluster", "context": {"user": "simple_token"}},
            {"name": "simple_token", "context": {"cluster": "default", "user": "simple_token"}},
            {"name": "azure", "context": {"cluster": "default", "user": "azure"}},
            {"name": "expired_azure", "context": {"cluster": "default", "user": "expired_azure"}},
            {"name": "unknown_provider", "context": {"cluster": "default", "user": "unknown_provider"}},
            {"name": "user_pass", "context": {"cluster": "default", "user": "user_pass"}},
            {"name": "ssl", "context": {"cluster": "ssl", "user": "ssl"}},
            {"name": "ssl_no_verification", "context": {"cluster": "ssl_no_verification", "user": "ssl"}},
            {"name": "ssl_no_file", "context": {"cluster": "ssl_no_file", "user": "ssl_no_file"}},
            {"name": "bad_encoding", "context": {"cluster": "bad_encoding", "user": "simple_token"}},
        ],
        "clusters": [
            {"name": "default", "cluster": {"server": TEST_SERVER}},
            {
                "name": "ssl",
                "cluster": {"server": TEST_SSL_SERVER, "certificate-authority-data": b64(TEST_CERT_AUTH)},
            },
            {
                "name": "ssl_no_verification",
                "cluster": {"server": TEST_SSL_SERVER, "insecure-skip-tls-verify": True},
            },
            {
                "name": "ssl_no_file",
                "cluster": {"server": TEST_SSL_SERVER, "certificate-authority": "test-cert-no-file"},
            },
            {
                "name": "bad_encoding",
                "cluster": {"server": TEST_SSL_SERVER, "certificate-authority-data": "not base64!"},
            },
        ],
        "users": [
            {
                "name": "simple_token",
                "user": {"token": TEST_DATA_BASE64, "username": TEST_USERNAME, "password": TEST_PASSWORD},
            },
            {
                "name": "azure",
                "user": {
                    "auth-provider": {
                        "name": "azure",
                        "config": {"access-token": TEST_DATA_BASE64, "expiry": no_expiry()},
                    },
                    "token": TEST_DATA_BASE64,
                    "username": TEST_USERNAME,
                    "password": TEST_PASSWORD,
                },
            },
            {
                "name": "expired_azure",
                "user": {
                    "auth-provider": {
                        "name": "azure",
                        "config": {"access-token": TEST_DATA_BASE64, "expiry": TEST_TOKEN_EXPIRY},
                    },
                    "token": TEST_DATA_BASE64,
                    "username": TEST_USERNAME,
                    "password": TEST_PASSWORD,
                },
            },
            {
                "name": "unknown_provider",
                "user": {
                    "auth-provider": {
                        "name": "oidc",
                        "config": {"access-token": TEST_ANOTHER_DATA_BASE64, "expiry": TEST_TOKEN_EXPIRY},
                    },
                    "token": TEST_DATA_BASE64,
                },
            },
            {"name": "user_pass", "user": {"username": TEST_USERNAME, "password": TEST_PASSWORD}},
            {
                "name": "ssl",
                "user": {
                    "token": TEST_DATA_BASE64,
                    "client-certificate-data": b64(TEST_CLIENT_CERT),
                    "client-key-data": b64(TEST_CLIENT_KEY),
                },
            },
            {
                "name": "ssl_no_file",
                "user": {
                    "token": TEST_DATA_BASE64,
                    "client-certificate": "test-client-cert-no-file",
                    "client-key": "test-client-key-no-file",
                },
            },
        ],
    }


@pytest.fixture
def test_kube_config() -> RawConfig:
    """A fresh copy of the reference document; refresh tests mutate it."""
    return RawConfig.model_validate(kube_config_document())
