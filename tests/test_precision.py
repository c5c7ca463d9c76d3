"""
Tests for decimal money precision — no floating point anywhere.

Amounts travel as decimal strings and are stored as NUMERIC(18, 2), so
0.10 + 0.20 is exactly 0.30, not 0.30000000000000004.

Tests verify:
  - Money fields are serialized as decimal strings
  - Repeated small entries don't accumulate rounding errors
  - Large amounts keep every cent
  - Amounts with more than two decimal places are rejected
"""

from decimal import Decimal


class TestDecimalPrecision:
    """Tests that all monetary operations are exact to the cent."""

    async def test_amounts_are_strings(self, operator_client, accounts):
        response = await operator_client.post(
            "/transactions",
            json={
                "date": "2025-01-10",
                "description": "Uang pangkal",
                "amount": "10.50",
                "type": "DEBIT",
                "account_id": str(accounts["SPP"]),
            },
        )
        txn = response.json()["transaction"]
        assert isinstance(txn["amount"], str)
        assert isinstance(txn["balance_after"], str)
        assert Decimal(txn["amount"]) == Decimal("10.50")

    async def test_tenth_plus_two_tenths(self, operator_client, accounts, read_balance):
        for amount in ["0.10", "0.20"]:
            await operator_client.post(
                "/transactions",
                json={
                    "date": "2025-01-10",
                    "description": "Receh",
                    "amount": amount,
                    "type": "DEBIT",
                    "account_id": str(accounts["SPP"]),
                },
            )
        assert await read_balance(accounts["SPP"]) == Decimal("0.30")

    async def test_many_small_entries(self, operator_client, accounts, read_balance):
        for _ in range(30):
            await operator_client.post(
                "/transactions",
                json={
                    "date": "2025-01-10",
                    "description": "Infaq",
                    "amount": "0.01",
                    "type": "DEBIT",
                    "account_id": str(accounts["SPP"]),
                },
            )
        assert await read_balance(accounts["SPP"]) == Decimal("0.30")

        response = await operator_client.get(f"/financial-accounts/{accounts['SPP']}/balance")
        data = response.json()
        assert data["match"] is True
        assert Decimal(data["computed_balance"]) == Decimal("0.30")

    async def test_large_amount(self, operator_client, accounts, read_balance):
        response = await operator_client.post(
            "/transactions",
            json={
                "date": "2025-01-10",
                "description": "Hibah gedung",
                "amount": "12345678901.23",
                "type": "DEBIT",
                "account_id": str(accounts["Bank"]),
            },
        )
        assert response.status_code == 201
        assert await read_balance(accounts["Bank"]) == Decimal("12346678901.23")

    async def test_three_decimal_places_rejected(self, operator_client, accounts, read_balance):
        response = await operator_client.post(
            "/transactions",
            json={
                "date": "2025-01-10",
                "description": "Terlalu presisi",
                "amount": "1.005",
                "type": "DEBIT",
                "account_id": str(accounts["SPP"]),
            },
        )
        assert response.status_code == 422
        assert await read_balance(accounts["SPP"]) == Decimal("0")
