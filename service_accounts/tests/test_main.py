"""
Unit tests for Accounts main service.
"""

import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient

from service_accounts.app.main import AccountsService, create_app, NOT_FOUND_BODY
from shared.config import get_config
from shared.errors import StartupFailure
from shared.test_helpers import InMemoryCredentialStore


class TestAccountsService:
    """Test cases for AccountsService."""

    @pytest.fixture
    def config(self):
        """Configuration with a dummy connection string."""
        return get_config("accounts", db_connection_string="postgres://db/test")

    @pytest.fixture
    def store(self):
        """Injected in-memory store."""
        return InMemoryCredentialStore({"acct-1": "abc.def.ghi"})

    @pytest.fixture
    def accounts_service(self, config, store):
        """Create AccountsService instance."""
        return AccountsService(config=config, store=store)

    @pytest.fixture
    def client(self, accounts_service):
        """Create test client running startup and shutdown hooks."""
        with TestClient(accounts_service.app) as client:
            yield client

    def test_account_found(self, client):
        """Test a known account returns its token as plain text."""
        response = client.get("/jwt/v1/accounts/acct-1")

        assert response.status_code == 200
        assert response.text == "abc.def.ghi"
        assert response.headers["content-type"].startswith("text/plain")

    def test_account_not_found(self, client):
        """Test an unknown account returns the fixed not-found body."""
        response = client.get("/jwt/v1/accounts/nope")

        assert response.status_code == 404
        assert response.text == NOT_FOUND_BODY

    def test_query_failure_looks_like_not_found(self, client, store, accounts_service):
        """Test store failures are hidden behind the same 404."""
        store.failure = "relation \"nats\" does not exist"

        response = client.get("/jwt/v1/accounts/acct-1")

        assert response.status_code == 404
        assert response.text == NOT_FOUND_BODY
        assert "nats" not in response.text
        assert accounts_service.metrics.registry.get_sample_value(
            "account_lookups_total", {"outcome": "query_failed"}
        ) == 1.0

    def test_insert_then_delete_scenario(self, client, store):
        """Test lookups follow the live store contents."""
        store.records["acct-2"] = "jkl.mno.pqr"
        response = client.get("/jwt/v1/accounts/acct-2")
        assert response.status_code == 200
        assert response.text == "jkl.mno.pqr"

        del store.records["acct-2"]
        response = client.get("/jwt/v1/accounts/acct-2")
        assert response.status_code == 404

    def test_repeated_lookups_agree(self, client):
        """Test repeated requests return the same token."""
        bodies = {client.get("/jwt/v1/accounts/acct-1").text for _ in range(5)}
        assert bodies == {"abc.def.ghi"}

    def test_accounts_base(self, client):
        """Test the liveness probe."""
        response = client.get("/jwt/v1/accounts/")

        assert response.status_code == 200
        assert response.text == "OK"

    def test_accounts_base_ignores_store_state(self, client, store):
        """Test the liveness probe succeeds with a broken store."""
        store.failure = "connection refused"

        response = client.get("/jwt/v1/accounts/")

        assert response.status_code == 200
        assert response.text == "OK"
        assert store.queries == []

    def test_health_endpoint(self, client):
        """Test the operator health endpoint reports the store."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "accounts"
        assert data["status"] == "ok"
        assert data["dependencies"]["postgres"] == "ok"

    def test_health_endpoint_degraded(self, client, store):
        """Test the operator health endpoint reports a broken store."""
        store.failure = "connection refused"

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["dependencies"]["postgres"] == "error"

    def test_metrics_endpoint(self, client):
        """Test metrics are exposed with route templates as labels."""
        client.get("/jwt/v1/accounts/acct-1")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "account_lookups_total" in response.text
        assert 'endpoint="/jwt/v1/accounts/{account_id:path}"' in response.text
        assert "acct-1" not in response.text

    def test_unmatched_paths_share_one_metric_label(self, client):
        """Test unknown paths do not create per-path metric series."""
        client.get("/no/such/secret-path")
        client.get("/another/secret-path")

        response = client.get("/metrics")

        assert 'endpoint="unmatched"' in response.text
        assert "secret-path" not in response.text

    def test_account_id_with_slash(self, client, store):
        """Test identifiers containing an encoded slash reach the store."""
        store.records["a/b"] = "tok"

        response = client.get("/jwt/v1/accounts/a%2Fb")

        assert response.status_code == 200
        assert response.text == "tok"
        assert store.queries == ["a/b"]

    def test_multi_segment_unknown_account(self, client):
        """Test unknown multi-segment identifiers get the fixed not-found body."""
        response = client.get("/jwt/v1/accounts/secret-acct/extra")

        assert response.status_code == 404
        assert response.text == NOT_FOUND_BODY

    def test_unhandled_error_keeps_request_id(self, accounts_service):
        """Test 500 responses carry the request id of the failed request."""
        @accounts_service.app.get("/explode")
        async def explode():
            raise RuntimeError("boom")

        with TestClient(accounts_service.app, raise_server_exceptions=False) as client:
            response = client.get("/explode", headers={"X-Request-ID": "req-500"})

        assert response.status_code == 500
        data = response.json()
        assert data["code"] == "INTERNAL_ERROR"
        assert data["request_id"] == "req-500"

    def test_request_id_propagated(self, client):
        """Test the request id header is echoed back."""
        response = client.get("/jwt/v1/accounts/", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_injected_store_not_stopped(self, accounts_service, store):
        """Test the service leaves a caller-owned store open."""
        with TestClient(accounts_service.app):
            pass

        assert store.stopped is False

    def test_create_app(self, config, store):
        """Test create_app wires the service onto app state."""
        app = create_app(config=config, store=store)

        assert isinstance(app.state.accounts_service, AccountsService)
        assert app.state.lookup_service.store is store


class TestAccountsServiceStartup:
    """Test cases for store acquisition at startup."""

    def test_startup_acquires_and_releases_store(self):
        """Test the service opens the store at startup and closes it at shutdown."""
        config = get_config("accounts", db_connection_string="postgres://db/test")
        store = InMemoryCredentialStore({"acct-1": "abc.def.ghi"})

        with patch(
            'service_accounts.app.main.acquire_store',
            new=AsyncMock(return_value=store)
        ) as mock_acquire:
            service = AccountsService(config=config)
            with TestClient(service.app) as client:
                response = client.get("/jwt/v1/accounts/acct-1")

        mock_acquire.assert_awaited_once_with(config)
        assert response.text == "abc.def.ghi"
        assert store.stopped is True

    def test_startup_fails_without_connection_string(self):
        """Test a missing connection string aborts startup."""
        config = get_config("accounts", db_connection_string=None)
        service = AccountsService(config=config)

        with pytest.raises(StartupFailure):
            with TestClient(service.app):
                pass
