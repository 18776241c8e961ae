"""Pytest configuration and shared fixtures."""

import base64
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest
import structlog

from gke_auto.core.config import GkeAutoConfig
from gke_auto.core.models import ClusterIdentity
from gke_auto.interfaces.cloud_provider import ClusterProvider, TokenSource
from gke_auto.interfaces.cloud_types import AccessToken, ClusterDescriptor

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
CA_BYTES = b"-----BEGIN CERTIFICATE-----\nMIIC-test-ca\n-----END CERTIFICATE-----\n"


class FakeGCP(TokenSource, ClusterProvider):
    """In-memory token source and cluster provider."""

    def __init__(self, token: AccessToken, descriptor: ClusterDescriptor):
        self.token = token
        self.descriptor = descriptor
        self.token_calls: list[list[str]] = []
        self.cluster_calls: list[ClusterIdentity] = []

    def get_token(self, scopes: Sequence[str]) -> AccessToken:
        self.token_calls.append(list(scopes))
        return self.token

    def get_cluster(self, identity: ClusterIdentity, token: AccessToken) -> ClusterDescriptor:
        self.cluster_calls.append(identity)
        return self.descriptor


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep every test away from the real ~/.kube, ~/.docker and ~/.config."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("KUBECONFIG", raising=False)
    monkeypatch.delenv("GKE_AUTO_CONFIG", raising=False)
    return home


@pytest.fixture(autouse=True)
def reset_structlog():
    """Drop logger configuration bound to streams of earlier tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def scratch_dir(tmp_path: Path) -> Path:
    """Scratch directory for cooldown records and lock files."""
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def kubeconfig_path(isolated_home: Path) -> Path:
    """Default kubeconfig location under the isolated home."""
    return isolated_home / ".kube" / "config"


@pytest.fixture
def identity() -> ClusterIdentity:
    """Sample cluster identity."""
    return ClusterIdentity(project="proj1", location="us-central1", name="c1")


@pytest.fixture
def ca_certificate_base64() -> str:
    """Base64-encoded CA certificate."""
    return base64.b64encode(CA_BYTES).decode("ascii")


@pytest.fixture
def descriptor(ca_certificate_base64: str) -> ClusterDescriptor:
    """Non-privileged cluster descriptor."""
    return ClusterDescriptor(
        endpoint="34.1.2.3",
        ca_certificate_base64=ca_certificate_base64,
        labels={"env": "dev"},
    )


@pytest.fixture
def privileged_descriptor(ca_certificate_base64: str) -> ClusterDescriptor:
    """Privileged cluster descriptor with a 120 second cooldown."""
    return ClusterDescriptor(
        endpoint="34.9.9.9",
        ca_certificate_base64=ca_certificate_base64,
        labels={"privileged": "true", "timeout-seconds": "120"},
    )


@pytest.fixture
def access_token() -> AccessToken:
    """Sample access token."""
    return AccessToken(
        access_token="ya29.test-token",
        expiry=datetime(2024, 5, 1, 13, 0, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def fake_gcp(access_token: AccessToken, descriptor: ClusterDescriptor) -> FakeGCP:
    """Fake token source and cluster provider."""
    return FakeGCP(access_token, descriptor)


@pytest.fixture
def clock() -> FixedClock:
    """Fixed clock at FIXED_NOW."""
    return FixedClock()


@pytest.fixture
def tool_config(scratch_dir: Path) -> GkeAutoConfig:
    """Tool configuration pointing at the scratch directory."""
    return GkeAutoConfig(scratch_dir=str(scratch_dir))


@pytest.fixture
def foreign_kubeconfig() -> dict[str, Any]:
    """Kubeconfig with entries gke-auto does not own."""
    return {
        "apiVersion": "v1",
        "kind": "Config",
        "preferences": {"colors": True},
        "clusters": [
            {
                "name": "other-cluster",
                "cluster": {
                    "server": "https://10.0.0.1",
                    "insecure-skip-tls-verify": True,
                },
            }
        ],
        "users": [
            {"name": "other-user", "user": {"token": "static-token"}},
        ],
        "contexts": [
            {
                "name": "other-context",
                "context": {"cluster": "other-cluster", "user": "other-user", "namespace": "ops"},
            }
        ],
        "current-context": "other-context",
        "extensions": [{"name": "custom", "extension": {"key": "value"}}],
    }


def pytest_configure(config: Any) -> None:
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "e2e: End-to-end scenario tests")
