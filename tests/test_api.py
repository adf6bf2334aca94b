"""
Tests for xl_odata.api module.
"""

import pytest
from fastapi.testclient import TestClient

from xl_odata.api.auth import (
    Authorized,
    BearerGate,
    RejectReason,
    Rejected,
    extract_bearer,
)
from xl_odata.api.gateway import ODataGateway, create_app
from xl_odata.core.connection import ConnectionContext
from xl_odata.core.errors import ConfigurationError, UpstreamDataError
from xl_odata.odata.table import Row

AUTH = {"Authorization": "Bearer right"}


class TestBearerGate:
    """Tests for BearerGate."""

    def test_absent_header(self):
        assert BearerGate("right").authorize(None) == Rejected(RejectReason.MISSING_TOKEN)

    def test_scheme_without_token(self):
        assert BearerGate("right").authorize("Bearer") == Rejected(RejectReason.MISSING_TOKEN)
        assert BearerGate("right").authorize("   ") == Rejected(RejectReason.MISSING_TOKEN)

    def test_wrong_token(self):
        assert BearerGate("right").authorize("Bearer wrong") == Rejected(RejectReason.INVALID_TOKEN)

    def test_no_partial_matches(self):
        gate = BearerGate("right")
        assert gate.authorize("Bearer righ") == Rejected(RejectReason.INVALID_TOKEN)
        assert gate.authorize("Bearer right2") == Rejected(RejectReason.INVALID_TOKEN)
        assert gate.authorize("Bearer RIGHT") == Rejected(RejectReason.INVALID_TOKEN)

    def test_right_token(self):
        assert BearerGate("right").authorize("Bearer right") == Authorized()

    def test_empty_secret_rejects_everything(self):
        assert BearerGate("").authorize("Bearer ") == Rejected(RejectReason.MISSING_TOKEN)
        assert BearerGate("").authorize("Bearer anything") == Rejected(RejectReason.INVALID_TOKEN)

    def test_reason_status_codes(self):
        assert RejectReason.MISSING_TOKEN.status_code == 401
        assert RejectReason.INVALID_TOKEN.status_code == 403

    def test_extract_bearer(self):
        assert extract_bearer("Bearer abc") == "abc"
        assert extract_bearer("Bearer  abc  ") == "abc"
        assert extract_bearer("") is None
        assert extract_bearer("bearer abc") == "abc"
        assert extract_bearer("Basic abc") is None
        assert extract_bearer("abc") is None

    def test_other_scheme_is_missing_token(self):
        gate = BearerGate("right")
        assert gate.authorize("Basic right") == Rejected(RejectReason.MISSING_TOKEN)
        assert gate.authorize("Token right") == Rejected(RejectReason.MISSING_TOKEN)
        assert gate.authorize("bearer right") == Authorized()


def _connection():
    return ConnectionContext(tenant_id="t", client_id="c", client_secret="s")


@pytest.fixture
def gateway(make_fetcher):
    return ODataGateway(
        bearer_token="right",
        file_path="Documents/data.xlsx",
        table_name="Table1",
        entity_set="ExcelRow",
        connection=_connection(),
        fetcher=make_fetcher(),
    )


@pytest.fixture
def client(gateway):
    with TestClient(create_app(gateway)) as c:
        yield c


class TestODataGateway:
    """Tests for ODataGateway configuration."""

    def test_validate_ok(self, gateway):
        gateway.validate()

    def test_validate_reports_missing_settings(self):
        gw = ODataGateway(
            bearer_token="",
            connection=ConnectionContext(tenant_id="t", client_id="c", client_secret=""),
        )
        with pytest.raises(ConfigurationError) as exc_info:
            gw.validate()
        assert "client_secret" in str(exc_info.value)
        assert "API_BEARER_TOKEN" in str(exc_info.value)

    def test_startup_loads_columns(self, gateway, client):
        assert gateway.fetcher.column_calls == 1

    def test_resolver_created_once(self, gateway):
        assert gateway.resolver is gateway.resolver


class TestServiceEndpoints:

    def test_health_needs_no_auth(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "columns": "ready"}

    def test_health_reports_failed_column_load(self, make_fetcher):
        gw = ODataGateway(
            bearer_token="right",
            connection=_connection(),
            fetcher=make_fetcher(column_failures=5),
        )
        with TestClient(create_app(gw)) as c:
            assert c.get("/health").json()["columns"] == "failed"

    def test_info(self, client):
        response = client.get("/")
        assert response.status_code == 200
        body = response.json()
        assert body["endpoints"]["metadata"] == "/odata/$metadata"
        assert body["endpoints"]["entitySet"] == "/odata/ExcelRow"


class TestODataAuth:

    def test_requires_authentication(self, client):
        response = client.get("/odata/ExcelRow")
        assert response.status_code == 401
        assert response.json() == {
            "error": {"code": "MissingToken", "message": "Authentication required"}
        }
        assert response.headers["www-authenticate"] == "Bearer"

    def test_rejects_invalid_token(self, client):
        response = client.get("/odata/ExcelRow", headers={"Authorization": "Bearer wrong"})
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "InvalidToken"

    def test_rejects_other_auth_scheme(self, client):
        response = client.get("/odata/ExcelRow", headers={"Authorization": "Basic right"})
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "MissingToken"

    def test_metadata_requires_authentication(self, client):
        assert client.get("/odata/$metadata").status_code == 401

    def test_service_document_requires_authentication(self, client):
        assert client.get("/odata").status_code == 401


class TestODataEndpoints:

    def test_service_document(self, client):
        response = client.get("/odata", headers=AUTH)
        assert response.status_code == 200
        body = response.json()
        assert body["value"] == [{"name": "ExcelRow", "kind": "EntitySet", "url": "ExcelRow"}]
        assert body["@odata.context"].endswith("/odata/$metadata")

    def test_collection(self, client):
        response = client.get("/odata/ExcelRow", headers=AUTH)

        assert response.status_code == 200
        assert response.headers["odata-version"] == "4.0"
        body = response.json()
        assert body["@odata.context"].endswith("/odata/$metadata#ExcelRow")
        assert body["value"] == [
            {"id": "0", "A": 1, "B": 2, "C": 3},
            {"id": "1", "A": 4, "B": 5, "C": 6},
            {"id": "2", "A": 7, "B": 8, "C": 9},
        ]

    def test_collection_reflects_current_rows(self, gateway, client):
        gateway.fetcher.rows = [Row(0, ("only",))]
        body = client.get("/odata/ExcelRow", headers=AUTH).json()
        assert body["value"] == [{"id": "0", "A": "only"}]

    @pytest.mark.parametrize("path", ["/odata/ExcelRow('0')", "/odata/ExcelRow(0)"])
    def test_entity_by_key(self, client, path):
        response = client.get(path, headers=AUTH)

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == "0"
        assert body["A"] == 1
        assert body["@odata.context"].endswith("#ExcelRow/$entity")

    def test_entity_invalid_key(self, client):
        response = client.get("/odata/ExcelRow('abc')", headers=AUTH)
        assert response.status_code == 400
        assert response.json() == {"error": {"code": "InvalidKey", "message": "Invalid entity key"}}

    def test_entity_not_found(self, client):
        response = client.get("/odata/ExcelRow('99')", headers=AUTH)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NotFound"

    def test_unknown_entity_set(self, client):
        response = client.get("/odata/Other", headers=AUTH)

        assert response.status_code == 404
        assert response.json() == {
            "error": {"code": "NotFound", "message": "Resource not found"}
        }
        assert response.headers["odata-version"] == "4.0"

    def test_metadata(self, client):
        response = client.get("/odata/$metadata", headers=AUTH)

        assert response.status_code == 200
        assert "application/xml" in response.headers["content-type"]
        assert 'EntitySet Name="ExcelRow"' in response.text
        assert 'Property Name="A" Type="Edm.Int64"' in response.text

    def test_upstream_failure_hides_cause(self, gateway, client):
        def broken():
            raise UpstreamDataError(500, "code=generalException | message=internal detail", "https://graph.test")

        gateway.fetcher.list_rows = broken

        response = client.get("/odata/ExcelRow", headers=AUTH)

        assert response.status_code == 502
        assert response.json() == {
            "error": {"code": "UpstreamDataError", "message": "Failed to read workbook data"}
        }
        assert "internal detail" not in response.text

    def test_recovers_after_failed_column_load(self, make_fetcher):
        fetcher = make_fetcher(column_failures=2)
        gw = ODataGateway(bearer_token="right", connection=_connection(), fetcher=fetcher)

        with TestClient(create_app(gw)) as c:
            assert c.get("/odata/ExcelRow", headers=AUTH).status_code == 502
            response = c.get("/odata/ExcelRow", headers=AUTH)

        assert response.status_code == 200
        assert len(response.json()["value"]) == 3
