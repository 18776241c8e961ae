"""Unit tests for GCPAdapter."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from gke_auto.adapters.gcp_adapter import GCPAdapter
from gke_auto.core.exceptions import GCPAuthError, GCPError
from gke_auto.core.models import ClusterIdentity
from gke_auto.interfaces.cloud_types import AccessToken, ClusterDescriptor
from gke_auto.interfaces.exceptions import (
    ClusterAccessDeniedError,
    ClusterFetchError,
    ClusterNotFoundError,
    ReauthenticationRequiredError,
    TokenSourceError,
)

SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


@pytest.fixture
def mock_client() -> MagicMock:
    """Mock GCPClient."""
    return MagicMock()


@pytest.fixture
def adapter(mock_client: MagicMock) -> GCPAdapter:
    """GCPAdapter around the mock client."""
    return GCPAdapter(client=mock_client)


class TestGCPAdapterInit:
    """Tests for adapter construction."""

    @patch("gke_auto.adapters.gcp_adapter.GCPClient")
    def test_creates_client(self, mock_client_cls: MagicMock) -> None:
        """Test that client arguments are forwarded."""
        adapter = GCPAdapter(container_api_endpoint="https://example.com/v1", timeout=5.0)

        mock_client_cls.assert_called_once_with(
            container_api_endpoint="https://example.com/v1", timeout=5.0
        )
        assert adapter.client == mock_client_cls.return_value


class TestGetToken:
    """Tests for GCPAdapter.get_token."""

    def test_naive_expiry_becomes_utc(self, adapter: GCPAdapter, mock_client: MagicMock) -> None:
        """Test conversion of google-auth's naive expiry."""
        mock_client.fetch_access_token.return_value = ("tok", datetime(2024, 5, 1, 13, 0, 0))

        token = adapter.get_token(SCOPES)

        assert token == AccessToken(
            access_token="tok", expiry=datetime(2024, 5, 1, 13, 0, 0, tzinfo=timezone.utc)
        )
        mock_client.fetch_access_token.assert_called_once_with(SCOPES)

    def test_aware_expiry_normalized(self, adapter: GCPAdapter, mock_client: MagicMock) -> None:
        """Test that aware expiries are converted to UTC."""
        plus_one = timezone(timedelta(hours=1))
        mock_client.fetch_access_token.return_value = ("tok", datetime(2024, 5, 1, 14, 0, 0, tzinfo=plus_one))

        assert adapter.get_token(SCOPES).expiry == datetime(2024, 5, 1, 13, 0, 0, tzinfo=timezone.utc)

    def test_missing_expiry_is_now(self, adapter: GCPAdapter, mock_client: MagicMock) -> None:
        """Test that a missing expiry is reported as already due."""
        mock_client.fetch_access_token.return_value = ("tok", None)
        before = datetime.now(timezone.utc)

        expiry = adapter.get_token(SCOPES).expiry

        assert before <= expiry <= datetime.now(timezone.utc)

    def test_auth_error(self, adapter: GCPAdapter, mock_client: MagicMock) -> None:
        """Test that credential problems ask the user to re-authenticate."""
        mock_client.fetch_access_token.side_effect = GCPAuthError("invalid_grant")

        with pytest.raises(ReauthenticationRequiredError, match="gcloud auth application-default login"):
            adapter.get_token(SCOPES)

    def test_other_error(self, adapter: GCPAdapter, mock_client: MagicMock) -> None:
        """Test that transport problems raise TokenSourceError."""
        mock_client.fetch_access_token.side_effect = GCPError("timeout")

        with pytest.raises(TokenSourceError) as exc_info:
            adapter.get_token(SCOPES)

        assert not isinstance(exc_info.value, ReauthenticationRequiredError)


class TestGetCluster:
    """Tests for GCPAdapter.get_cluster."""

    def test_descriptor(
        self, adapter: GCPAdapter, mock_client: MagicMock, identity: ClusterIdentity, access_token: AccessToken
    ) -> None:
        """Test building the descriptor from the cluster resource."""
        mock_client.get_cluster.return_value = {
            "name": "c1",
            "endpoint": "34.1.2.3",
            "masterAuth": {"clusterCaCertificate": "Q0E="},
            "resourceLabels": {"privileged": "true", "timeout-seconds": "60"},
        }

        descriptor = adapter.get_cluster(identity, access_token)

        assert descriptor == ClusterDescriptor(
            endpoint="34.1.2.3",
            ca_certificate_base64="Q0E=",
            labels={"privileged": "true", "timeout-seconds": "60"},
        )
        mock_client.get_cluster.assert_called_once_with("proj1", "us-central1", "c1", "ya29.test-token")

    def test_no_labels(
        self, adapter: GCPAdapter, mock_client: MagicMock, identity: ClusterIdentity, access_token: AccessToken
    ) -> None:
        """Test a cluster without resource labels."""
        mock_client.get_cluster.return_value = {"endpoint": "34.1.2.3", "masterAuth": {}}

        descriptor = adapter.get_cluster(identity, access_token)

        assert descriptor.labels == {}
        assert descriptor.ca_certificate_base64 == ""

    def test_missing_endpoint(
        self, adapter: GCPAdapter, mock_client: MagicMock, identity: ClusterIdentity, access_token: AccessToken
    ) -> None:
        """Test that a cluster without an endpoint is rejected."""
        mock_client.get_cluster.return_value = {"name": "c1"}

        with pytest.raises(ClusterFetchError, match="no endpoint"):
            adapter.get_cluster(identity, access_token)

    @pytest.mark.parametrize(
        ("status", "error_cls", "message"),
        [
            (401, ClusterAccessDeniedError, "access denied to cluster proj1/us-central1/c1"),
            (403, ClusterAccessDeniedError, "access denied to cluster proj1/us-central1/c1"),
            (404, ClusterNotFoundError, "not found: cluster proj1/us-central1/c1"),
            (500, ClusterFetchError, "failed to get cluster proj1/us-central1/c1"),
            (None, ClusterFetchError, "failed to get cluster proj1/us-central1/c1"),
        ],
    )
    def test_errors(
        self,
        adapter: GCPAdapter,
        mock_client: MagicMock,
        identity: ClusterIdentity,
        access_token: AccessToken,
        status,
        error_cls,
        message: str,
    ) -> None:
        """Test mapping of HTTP failures to interface errors."""
        mock_client.get_cluster.side_effect = GCPError("GET url", status_code=status, body="body")

        with pytest.raises(error_cls, match=message) as exc_info:
            adapter.get_cluster(identity, access_token)

        assert type(exc_info.value) is error_cls
        assert exc_info.value.status_code == status
        assert exc_info.value.body == "body"
