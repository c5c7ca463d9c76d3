"""
Tests for financial accounts: creation, balance verification and the
dashboard overview.

These tests verify:
  - Admins create accounts; names are unique (409)
  - A non-zero opening balance is recorded as an opening DEBIT entry
  - The balance check recomputes from the entries and walks the chain
  - A tampered entry shows up as a chain break and a mismatch
  - The operating total excludes bank accounts
  - The ledger lists entries in chain order
"""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import select, update

from bookkeeping.database import session_scope
from bookkeeping.exceptions import LedgerValidationError
from bookkeeping.models.financial_account import FinancialAccount
from bookkeeping.models.transaction import Transaction
from bookkeeping.services import account_service


class TestAccountCreation:
    """Tests for POST /financial-accounts."""

    async def test_create_account(self, admin_client):
        response = await admin_client.post(
            "/financial-accounts", json={"name": "Kegiatan"}
        )
        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Kegiatan"
        assert Decimal(data["balance"]) == Decimal("0")
        assert data["is_bank"] is False
        assert data["last_entry_number"] == 0

    async def test_opening_balance_is_an_entry(self, admin_client):
        response = await admin_client.post(
            "/financial-accounts",
            json={"name": "Bank", "is_bank": True, "opening_balance": "2500000.00"},
        )
        assert response.status_code == 201
        account = response.json()
        assert Decimal(account["balance"]) == Decimal("2500000.00")
        assert account["last_entry_number"] == 1

        ledger = await admin_client.get(f"/financial-accounts/{account['id']}/ledger")
        entries = ledger.json()
        assert len(entries) == 1
        assert entries[0]["type"] == "DEBIT"
        assert entries[0]["description"] == "Opening balance"
        assert Decimal(entries[0]["balance_before"]) == Decimal("0")
        assert Decimal(entries[0]["balance_after"]) == Decimal("2500000.00")
        assert entries[0]["user_name"] == "Admin Sekolah"

    async def test_duplicate_name_rejected(self, admin_client, accounts):
        response = await admin_client.post("/financial-accounts", json={"name": "SPP"})
        assert response.status_code == 409
        assert response.json()["error_type"] == "duplicate_name"

    async def test_negative_opening_balance_rejected(self, admin_client):
        response = await admin_client.post(
            "/financial-accounts",
            json={"name": "Kas Kecil", "opening_balance": "-10.00"},
        )
        assert response.status_code == 422

    @pytest.mark.parametrize("opening", ["NaN", "Infinity", "-Infinity", "abc"])
    async def test_non_numeric_opening_balance_rejected(self, session_factory, admin_user, opening):
        with pytest.raises(LedgerValidationError):
            async with session_scope(session_factory) as db:
                await account_service.create_account(
                    db, "Kas", admin_user.id, opening_balance=opening
                )

        async with session_scope(session_factory) as db:
            assert (await db.execute(select(FinancialAccount))).first() is None

    async def test_unknown_account_404(self, admin_client):
        response = await admin_client.get(f"/financial-accounts/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["error_type"] == "account_not_found"


class TestBalanceVerification:
    """Tests for GET /financial-accounts/{id}/balance."""

    async def test_balance_matches_entries(self, operator_client, accounts):
        bank = accounts["Bank"]
        for txn_type, amount in [("CREDIT", "150000.00"), ("DEBIT", "40000.50"), ("CREDIT", "0.50")]:
            response = await operator_client.post(
                "/transactions",
                json={
                    "date": "2025-01-10",
                    "description": "Kas harian",
                    "amount": amount,
                    "type": txn_type,
                    "account_id": str(bank),
                },
            )
            assert response.status_code == 201

        response = await operator_client.get(f"/financial-accounts/{bank}/balance")
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["cached_balance"]) == Decimal("890000.00")
        assert Decimal(data["computed_balance"]) == Decimal("890000.00")
        assert data["match"] is True
        assert data["entry_count"] == 4
        assert data["chain_breaks"] == []

    async def test_empty_account_matches(self, operator_client, accounts):
        response = await operator_client.get(
            f"/financial-accounts/{accounts['SPP']}/balance"
        )
        data = response.json()
        assert data["match"] is True
        assert data["entry_count"] == 0
        assert Decimal(data["computed_balance"]) == Decimal("0")

    async def test_tampered_entry_is_detected(
        self, operator_client, accounts, session_factory
    ):
        bank = accounts["Bank"]
        await operator_client.post(
            "/transactions",
            json={
                "date": "2025-01-10",
                "description": "Beli kapur",
                "amount": "25000.00",
                "type": "CREDIT",
                "account_id": str(bank),
            },
        )

        # Rewrite the second entry's amount and snapshot behind the ledger's back
        async with session_scope(session_factory) as db:
            await db.execute(
                update(Transaction)
                .where(Transaction.account_id == bank)
                .where(Transaction.entry_number == 2)
                .values(amount=Decimal("20000.00"), balance_before=Decimal("999000.00"))
            )

        response = await operator_client.get(f"/financial-accounts/{bank}/balance")
        data = response.json()
        assert data["match"] is False
        assert data["chain_breaks"] == [2]
        assert Decimal(data["cached_balance"]) == Decimal("975000.00")
        assert Decimal(data["computed_balance"]) == Decimal("980000.00")


class TestOverview:
    """Tests for GET /financial-accounts/overview."""

    async def test_operating_total_excludes_bank(self, operator_client, accounts):
        await operator_client.post(
            "/transactions",
            json={
                "date": "2025-01-10",
                "description": "SPP Januari",
                "amount": "300000.00",
                "type": "DEBIT",
                "account_id": str(accounts["SPP"]),
            },
        )

        response = await operator_client.get("/financial-accounts/overview")
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["total_operating_balance"]) == Decimal("300000.00")
        assert Decimal(data["bank_balance"]) == Decimal("1000000.00")
        assert [a["name"] for a in data["accounts"]] == ["Bank", "SPP"]


class TestLedger:
    """Tests for GET /financial-accounts/{id}/ledger."""

    async def test_entries_in_chain_order(self, operator_client, accounts, session_factory):
        spp = accounts["SPP"]
        # Business dates deliberately out of order
        for entry_date, amount in [("2025-01-30", "100.00"), ("2025-01-20", "200.00"), ("2025-01-10", "300.00")]:
            await operator_client.post(
                "/transactions",
                json={
                    "date": entry_date,
                    "description": "SPP",
                    "amount": amount,
                    "type": "DEBIT",
                    "account_id": str(spp),
                },
            )

        response = await operator_client.get(f"/financial-accounts/{spp}/ledger")
        entries = response.json()
        assert [e["entry_number"] for e in entries] == [1, 2, 3]
        assert [Decimal(e["balance_after"]) for e in entries] == [
            Decimal("100.00"), Decimal("300.00"), Decimal("600.00"),
        ]
        for previous, current in zip(entries, entries[1:]):
            assert Decimal(current["balance_before"]) == Decimal(previous["balance_after"])

        async with session_scope(session_factory) as db:
            result = await db.execute(
                select(Transaction.entry_number).where(Transaction.account_id == spp)
            )
            assert sorted(result.scalars().all()) == [1, 2, 3]
