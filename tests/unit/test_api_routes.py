"""Router tests: auth, envelope and error mapping with the services mocked out."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import AsyncClient

from src.main import app
from src.tl_balance.application.schemas import BalanceResponse
from src.tl_common.database import get_db_session
from src.tl_common.errors import (
    InvalidPurchaseError,
    MeterReadingRejectedError,
    PurchaseNotFoundError,
)
from src.tl_gateway.auth.jwt_handler import create_access_token
from src.tl_gateway.middleware.request_log import resolve_request_id
from src.tl_receipt.application.schemas import BulkImportResponse


async def _fake_session():
    yield MagicMock()


@pytest.fixture(autouse=True)
def _override_db():
    app.dependency_overrides[get_db_session] = _fake_session
    yield
    app.dependency_overrides.pop(get_db_session, None)


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token('alice')}"}


class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestAuth:
    async def test_missing_token(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/balance")
        assert resp.status_code == 401

    async def test_invalid_token(self, client: AsyncClient) -> None:
        resp = await client.get(
            "/api/v1/balance", headers={"Authorization": "Bearer garbage"}
        )
        assert resp.status_code == 401
        assert resp.headers["www-authenticate"] == "Bearer"


class TestBalanceRoutes:
    async def test_balance_envelope(self, client: AsyncClient, auth_headers) -> None:
        mock_service = MagicMock()
        mock_service.get_balance = AsyncMock(
            return_value=BalanceResponse.from_balance("alice", 10.0)
        )
        with patch("src.tl_balance.api.router._service", mock_service):
            resp = await client.get("/api/v1/balance", headers=auth_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["code"] == 0
        assert body["data"]["running_balance"] == 10.0
        assert body["data"]["status"] == "credit"
        assert body["request_id"].startswith("req_")
        # member id comes from the token, not the request
        assert mock_service.get_balance.await_args.args[1] == "alice"


class TestErrorMapping:
    async def test_app_error_uses_its_status_and_code(
        self, client: AsyncClient, auth_headers
    ) -> None:
        mock_service = MagicMock()
        mock_service.get_optimal_contribution = AsyncMock(
            side_effect=PurchaseNotFoundError("p-404")
        )
        with patch("src.tl_cost.api.router._service", mock_service):
            resp = await client.get(
                "/api/v1/cost/optimal-contribution",
                params={"purchase_id": "p-404", "tokens_consumed": 10},
                headers=auth_headers,
            )

        assert resp.status_code == 404
        body = resp.json()
        assert body["code"] == 2001
        assert body["data"] is None

    async def test_invalid_stored_purchase_is_a_server_error(
        self, client: AsyncClient, auth_headers
    ) -> None:
        mock_service = MagicMock()
        mock_service.get_optimal_contribution = AsyncMock(
            side_effect=InvalidPurchaseError("p1", "total_tokens must be positive, got 0.0")
        )
        with patch("src.tl_cost.api.router._service", mock_service):
            resp = await client.get(
                "/api/v1/cost/optimal-contribution",
                params={"purchase_id": "p1", "tokens_consumed": 10},
                headers=auth_headers,
            )

        assert resp.status_code == 500
        assert resp.json()["code"] == 2003

    async def test_rejected_reading_lists_every_error(
        self, client: AsyncClient, auth_headers
    ) -> None:
        mock_service = MagicMock()
        mock_service.record_reading = AsyncMock(
            side_effect=MeterReadingRejectedError(["first problem", "second problem"])
        )
        with patch("src.tl_meter.api.router._service", mock_service):
            resp = await client.post(
                "/api/v1/meter-readings",
                json={"reading": 1115, "reading_date": "2024-01-05"},
                headers=auth_headers,
            )

        assert resp.status_code == 422
        body = resp.json()
        assert body["code"] == 3001
        assert body["data"] == {"errors": ["first problem", "second problem"]}
        args = mock_service.record_reading.await_args.args
        assert args[1:4] == ("alice", 1115.0, date(2024, 1, 5))

    async def test_request_validation(self, client: AsyncClient, auth_headers) -> None:
        resp = await client.post(
            "/api/v1/meter-readings",
            json={"reading": -1, "reading_date": "2024-01-05"},
            headers=auth_headers,
        )
        assert resp.status_code == 422


class TestReceiptRoutes:
    async def test_bulk_import_accepts_camel_case_flag(
        self, client: AsyncClient, auth_headers
    ) -> None:
        mock_service = MagicMock()
        mock_service.match_receipts = AsyncMock(
            return_value=BulkImportResponse(
                preview=False,
                total_rows=1,
                valid_rows=0,
                matches=[],
                validation_errors=[],
            )
        )
        with patch("src.tl_receipt.api.router._service", mock_service):
            resp = await client.post(
                "/api/v1/receipts/bulk-import",
                json={"receipts": [{"kwhPurchased": 10}], "autoImport": True},
                headers=auth_headers,
            )

        assert resp.status_code == 200
        assert resp.json()["data"]["preview"] is False
        call = mock_service.match_receipts.await_args
        assert call.args[1] == [{"kwhPurchased": 10}]
        assert call.args[2] is True


class TestRequestCorrelation:
    def test_well_formed_caller_id_is_kept(self) -> None:
        assert resolve_request_id("crud-7f3a:42") == "crud-7f3a:42"

    @pytest.mark.parametrize("incoming", [None, "", "has spaces", "x" * 65])
    def test_other_ids_are_replaced(self, incoming: str | None) -> None:
        assert resolve_request_id(incoming).startswith("req_")

    async def test_caller_id_flows_into_envelope_and_header(
        self, client: AsyncClient, auth_headers
    ) -> None:
        mock_service = MagicMock()
        mock_service.get_balance = AsyncMock(
            return_value=BalanceResponse.from_balance("alice", 0.0)
        )
        with patch("src.tl_balance.api.router._service", mock_service):
            resp = await client.get(
                "/api/v1/balance",
                headers={**auth_headers, "X-Request-ID": "crud-42"},
            )

        assert resp.headers["x-request-id"] == "crud-42"
        assert resp.json()["request_id"] == "crud-42"

    async def test_generated_id_is_returned_in_header(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.headers["x-request-id"].startswith("req_")
