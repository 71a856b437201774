"""Integration tests for the ledger endpoints (requires running PG).

Pre-condition: alembic upgrade head

Uses the session-scoped fixtures from tests/integration/conftest.py.
All tests share one event loop so the asyncpg pool never crosses loops.
"""

import pytest
from httpx import AsyncClient

pytestmark = [pytest.mark.asyncio(loop_scope="session"), pytest.mark.integration]


class TestBalance:
    async def test_unauthenticated_returns_401(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/balance")
        assert resp.status_code == 401

    async def test_first_purchase_rule_and_proportional_share(
        self, auth_client: AsyncClient
    ) -> None:
        resp = await auth_client.get("/api/v1/balance/breakdown")

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert [ln["fair_share"] for ln in data["lines"]] == [0.0, 20.0]
        assert [ln["balance_change"] for ln in data["lines"]] == [10.0, -2.0]
        assert data["running_balance"] == 8.0

    async def test_balance_summary(self, auth_client: AsyncClient) -> None:
        resp = await auth_client.get("/api/v1/balance")

        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "credit"


class TestCostSummary:
    async def test_summary_counts_contributions(self, auth_client: AsyncClient) -> None:
        resp = await auth_client.get("/api/v1/cost/summary")

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["contribution_count"] == 2
        # 40/100 x 20 + 80/200 x 50
        assert data["breakdown"]["total_true_cost"] == 28.0


class TestMeterReadings:
    async def test_reading_above_purchased_tokens_is_rejected(
        self, auth_client: AsyncClient
    ) -> None:
        resp = await auth_client.post(
            "/api/v1/meter-readings/validate",
            json={"reading": 5000, "reading_date": "2000-01-05"},
        )

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["valid"] is False
        assert any("cannot exceed" in e for e in data["errors"])

    async def test_contribution_reading_must_match_purchase(
        self, auth_client: AsyncClient, seeded_ledger: dict[str, str]
    ) -> None:
        resp = await auth_client.post(
            "/api/v1/meter-readings/validate-contribution",
            json={"purchase_id": seeded_ledger["first"], "meter_reading": 1000.5},
        )

        data = resp.json()["data"]
        assert data["valid"] is False
        assert data["expected_reading"] == 1000.0


class TestReceiptPreview:
    async def test_preview_matches_seeded_purchase(
        self, auth_client: AsyncClient, seeded_ledger: dict[str, str]
    ) -> None:
        resp = await auth_client.post(
            "/api/v1/receipts/bulk-import",
            json={
                "receipts": [
                    {
                        "transactionDateTime": "01/01/00 09:15:00",
                        "kwhPurchased": 100,
                        "energyCostZWG": 500,
                        "totalAmountZWG": 500,
                        "tenderedZWG": 500,
                    }
                ],
                "autoImport": False,
            },
        )

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["preview"] is True
        assert data["matches"][0]["purchase_id"] == seeded_ledger["first"]
        assert data["matches"][0]["confidence"] == "high"
