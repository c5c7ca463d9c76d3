"""
Tests for liabilities: creation, settlement and aging.

These tests verify:
  - WE_OWE liabilities move no money at creation; payments go out as CREDITs
  - WE_ARE_OWED liabilities post a CREDIT at creation; payments come back
    in as DEBITs through the originating entry's account
  - Partial payments accumulate; the final one marks the liability PAID
    and becomes its transaction_id when it had none
  - Paying a PAID liability (409) or more than remains (422) changes nothing
  - A liability with no account to settle against cannot be paid
  - The overdue sweep is idempotent and touches no balances
  - Reminder summaries and reports
"""

import datetime as dt
import uuid
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from bookkeeping.database import session_scope
from bookkeeping.exceptions import (
    LedgerValidationError,
    SettlementAccountNotFoundError,
)
from bookkeeping.models.liability import Liability, LiabilityDirection, LiabilityStatus
from bookkeeping.models.transaction import Transaction
from bookkeeping.services import liability_service


def liability_entry(account_id, amount, direction, vendor="CV Sumber Jaya", due_date="2025-02-10", **extra):
    return {
        "date": "2025-01-10",
        "description": "Pengadaan meja kelas",
        "amount": amount,
        "account_id": str(account_id),
        "is_liability": True,
        "vendor_name": vendor,
        "due_date": due_date,
        "liability_direction": direction,
        **extra,
    }


def payment(amount, description="Cicilan", date="2025-01-20"):
    return {"amount": amount, "description": description, "date": date}


async def new_liability(session_factory, author_id, account_id, amount, due_date, vendor="CV Sumber Jaya",
                        direction=LiabilityDirection.WE_OWE) -> uuid.UUID:
    async with session_scope(session_factory) as db:
        liability = await liability_service.create_liability(
            db,
            vendor_name=vendor,
            amount=amount,
            due_date=due_date,
            direction=direction,
            author_id=author_id,
            account_id=account_id,
        )
        return liability.id


class TestLiabilityCreation:
    """Tests for liability-flagged POST /transactions and POST /liabilities."""

    async def test_we_owe_moves_no_money(self, operator_client, accounts, read_balance, session_factory):
        response = await operator_client.post(
            "/transactions", json=liability_entry(accounts["Bank"], "500000.00", "WE_OWE")
        )
        assert response.status_code == 201
        body = response.json()
        assert body["transaction"] is None
        liability = body["liability"]
        assert liability["status"] == "PENDING"
        assert liability["direction"] == "WE_OWE"
        assert liability["transaction_id"] is None
        assert liability["account_id"] == str(accounts["Bank"])
        assert Decimal(liability["paid_amount"]) == Decimal("0")
        assert Decimal(liability["remaining_amount"]) == Decimal("500000.00")

        assert await read_balance(accounts["Bank"]) == Decimal("1000000.00")
        async with session_scope(session_factory) as db:
            count = await db.scalar(
                select(func.count()).select_from(Transaction)
                .where(Transaction.account_id == accounts["Bank"])
            )
        assert count == 1  # just the opening entry

    async def test_we_are_owed_posts_credit(self, operator_client, accounts, read_balance):
        response = await operator_client.post(
            "/transactions",
            json=liability_entry(accounts["Bank"], "150000.00", "WE_ARE_OWED", vendor="Koperasi Guru"),
        )
        assert response.status_code == 201
        body = response.json()
        txn = body["transaction"]
        assert txn["type"] == "CREDIT"
        assert Decimal(txn["balance_after"]) == Decimal("850000.00")
        assert body["liability"]["transaction_id"] == txn["id"]

        assert await read_balance(accounts["Bank"]) == Decimal("850000.00")

    async def test_we_are_owed_rejects_debit_type(self, operator_client, accounts, read_balance):
        response = await operator_client.post(
            "/transactions",
            json=liability_entry(accounts["Bank"], "150000.00", "WE_ARE_OWED", type="DEBIT"),
        )
        assert response.status_code == 400
        assert response.json()["error_type"] == "validation_error"
        assert await read_balance(accounts["Bank"]) == Decimal("1000000.00")

    async def test_liability_entry_requires_vendor(self, operator_client, accounts):
        body = liability_entry(accounts["Bank"], "10.00", "WE_OWE")
        del body["vendor_name"]
        response = await operator_client.post("/transactions", json=body)
        assert response.status_code == 422

    async def test_register_liability(self, operator_client, accounts):
        response = await operator_client.post(
            "/liabilities",
            json={
                "vendor_name": "PT Listrik Negara",
                "amount": "275000.00",
                "due_date": "2025-01-25",
                "direction": "WE_OWE",
                "account_id": str(accounts["SPP"]),
                "notes": "Tagihan Januari",
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["vendor_name"] == "PT Listrik Negara"
        assert data["notes"] == "Tagihan Januari"

        listed = await operator_client.get("/liabilities", params={"vendor": "listrik"})
        assert [item["id"] for item in listed.json()] == [data["id"]]

    async def test_register_needs_settlement_reference(self, operator_client):
        response = await operator_client.post(
            "/liabilities",
            json={
                "vendor_name": "Tanpa Akun",
                "amount": "10.00",
                "due_date": "2025-01-25",
                "direction": "WE_OWE",
            },
        )
        assert response.status_code == 422

    async def test_service_needs_settlement_reference(self, session_factory, admin_user):
        with pytest.raises(LedgerValidationError):
            async with session_scope(session_factory) as db:
                await liability_service.create_liability(
                    db,
                    vendor_name="Tanpa Akun",
                    amount="10.00",
                    due_date=dt.date(2025, 1, 25),
                    direction="WE_OWE",
                    author_id=admin_user.id,
                )

    @pytest.mark.parametrize("field, error_type", [
        ("category_id", "category_not_found"),
        ("student_id", "student_not_found"),
    ])
    async def test_we_owe_rejects_unknown_reference(
        self, operator_client, accounts, session_factory, field, error_type
    ):
        response = await operator_client.post(
            "/transactions",
            json=liability_entry(accounts["Bank"], "500000.00", "WE_OWE", **{field: str(uuid.uuid4())}),
        )
        assert response.status_code == 404
        assert response.json()["error_type"] == error_type

        async with session_scope(session_factory) as db:
            assert await db.scalar(select(func.count()).select_from(Liability)) == 0

    async def test_we_owe_rejects_debit_type(self, operator_client, accounts, session_factory):
        response = await operator_client.post(
            "/transactions",
            json=liability_entry(accounts["Bank"], "500000.00", "WE_OWE", type="DEBIT"),
        )
        assert response.status_code == 400
        assert response.json()["error_type"] == "validation_error"

        async with session_scope(session_factory) as db:
            assert await db.scalar(select(func.count()).select_from(Liability)) == 0

    async def test_we_owe_rejects_proof_file(self, operator_client, accounts):
        response = await operator_client.post(
            "/transactions",
            json=liability_entry(accounts["Bank"], "500000.00", "WE_OWE", proof_file="nota.pdf"),
        )
        assert response.status_code == 400

    async def test_we_owe_payment_carries_category_and_student(self, operator_client, accounts):
        category = (await operator_client.post(
            "/categories", json={"name": "Seragam", "type": "CREDIT"}
        )).json()
        student = (await operator_client.post(
            "/students", json={"name": "Siti Aminah", "nis": "2025001"}
        )).json()

        created = await operator_client.post(
            "/transactions",
            json=liability_entry(
                accounts["Bank"], "120000.00", "WE_OWE", vendor="Konveksi Maju",
                type="CREDIT", category_id=category["id"], student_id=student["id"],
            ),
        )
        assert created.status_code == 201
        liability = created.json()["liability"]
        assert liability["category_id"] == category["id"]
        assert liability["student_id"] == student["id"]

        paid = await operator_client.post(
            f"/liabilities/{liability['id']}/payments", json=payment("120000.00", "Lunas seragam")
        )
        assert paid.status_code == 201
        txn = paid.json()["transaction"]
        assert txn["type"] == "CREDIT"
        assert txn["category_name"] == "Seragam"
        assert txn["student_name"] == "Siti Aminah"


class TestPayment:
    """Tests for POST /liabilities/{id}/payments."""

    async def test_partial_then_full_payment(self, operator_client, accounts, read_balance):
        created = await operator_client.post(
            "/liabilities",
            json={
                "vendor_name": "CV Sumber Jaya",
                "amount": "500000.00",
                "due_date": "2025-02-10",
                "direction": "WE_OWE",
                "account_id": str(accounts["Bank"]),
            },
        )
        liability_id = created.json()["id"]

        first = await operator_client.post(
            f"/liabilities/{liability_id}/payments", json=payment("300000.00", "Cicilan 1")
        )
        assert first.status_code == 201
        first_body = first.json()
        assert first_body["transaction"]["type"] == "CREDIT"
        assert first_body["transaction"]["account_id"] == str(accounts["Bank"])
        assert Decimal(first_body["liability"]["paid_amount"]) == Decimal("300000.00")
        assert first_body["liability"]["status"] == "PENDING"
        assert first_body["liability"]["transaction_id"] is None
        assert first_body["payment"]["transaction_id"] == first_body["transaction"]["id"]
        assert await read_balance(accounts["Bank"]) == Decimal("700000.00")

        second = await operator_client.post(
            f"/liabilities/{liability_id}/payments", json=payment("200000.00", "Pelunasan")
        )
        assert second.status_code == 201
        second_body = second.json()
        assert Decimal(second_body["liability"]["paid_amount"]) == Decimal("500000.00")
        assert Decimal(second_body["liability"]["remaining_amount"]) == Decimal("0")
        assert second_body["liability"]["status"] == "PAID"
        assert second_body["liability"]["transaction_id"] == second_body["transaction"]["id"]
        assert await read_balance(accounts["Bank"]) == Decimal("500000.00")

        payments = await operator_client.get(f"/liabilities/{liability_id}/payments")
        assert [p["description"] for p in payments.json()] == ["Pelunasan", "Cicilan 1"]

    async def test_paid_liability_rejects_payment(self, operator_client, accounts, read_balance):
        created = await operator_client.post(
            "/transactions", json=liability_entry(accounts["Bank"], "100000.00", "WE_OWE")
        )
        liability_id = created.json()["liability"]["id"]
        await operator_client.post(f"/liabilities/{liability_id}/payments", json=payment("100000.00"))

        response = await operator_client.post(
            f"/liabilities/{liability_id}/payments", json=payment("1.00")
        )
        assert response.status_code == 409
        assert response.json()["error_type"] == "already_settled"
        assert await read_balance(accounts["Bank"]) == Decimal("900000.00")

    async def test_overpayment_reports_remaining(self, operator_client, accounts, read_balance):
        created = await operator_client.post(
            "/transactions", json=liability_entry(accounts["Bank"], "100000.00", "WE_OWE")
        )
        liability_id = created.json()["liability"]["id"]
        await operator_client.post(f"/liabilities/{liability_id}/payments", json=payment("60000.00"))

        response = await operator_client.post(
            f"/liabilities/{liability_id}/payments", json=payment("40000.01")
        )
        assert response.status_code == 422
        data = response.json()
        assert data["error_type"] == "overpayment"
        assert Decimal(data["remaining"]) == Decimal("40000.00")

        liability = await operator_client.get(f"/liabilities/{liability_id}")
        assert Decimal(liability.json()["paid_amount"]) == Decimal("60000.00")
        assert await read_balance(accounts["Bank"]) == Decimal("940000.00")

    async def test_we_are_owed_repayment_is_debit(self, operator_client, accounts, read_balance):
        created = await operator_client.post(
            "/transactions",
            json=liability_entry(accounts["Bank"], "150000.00", "WE_ARE_OWED", vendor="Koperasi Guru"),
        )
        body = created.json()
        liability_id = body["liability"]["id"]
        origin_id = body["liability"]["transaction_id"]

        response = await operator_client.post(
            f"/liabilities/{liability_id}/payments", json=payment("150000.00", "Pengembalian pinjaman")
        )
        assert response.status_code == 201
        data = response.json()
        assert data["transaction"]["type"] == "DEBIT"
        assert data["transaction"]["account_id"] == str(accounts["Bank"])
        assert data["liability"]["status"] == "PAID"
        # Already had its originating entry; that link is kept
        assert data["liability"]["transaction_id"] == origin_id
        assert await read_balance(accounts["Bank"]) == Decimal("1000000.00")

    async def test_unknown_liability(self, operator_client):
        response = await operator_client.post(
            f"/liabilities/{uuid.uuid4()}/payments", json=payment("1.00")
        )
        assert response.status_code == 404
        assert response.json()["error_type"] == "liability_not_found"

    async def test_no_settlement_account(self, session_factory, admin_user, accounts, read_balance):
        # Only possible for rows written outside the service (e.g. imports)
        async with session_scope(session_factory) as db:
            orphan = Liability(
                vendor_name="Data Lama",
                amount=Decimal("5000.00"),
                paid_amount=Decimal("0.00"),
                due_date=dt.date(2025, 1, 31),
                direction=LiabilityDirection.WE_OWE,
                status=LiabilityStatus.PENDING,
                user_id=admin_user.id,
            )
            db.add(orphan)
            await db.flush()
            orphan_id = orphan.id

        with pytest.raises(SettlementAccountNotFoundError):
            async with session_scope(session_factory) as db:
                await liability_service.pay_liability(
                    db, orphan_id, amount="5000.00", description="Pelunasan", author_id=admin_user.id
                )

        assert await read_balance(accounts["Bank"]) == Decimal("1000000.00")
        async with session_scope(session_factory) as db:
            orphan = await db.get(Liability, orphan_id)
            assert orphan.paid_amount == Decimal("0.00")
            assert orphan.status is LiabilityStatus.PENDING

    async def test_payment_is_audited(self, admin_client, operator_client, accounts):
        created = await operator_client.post(
            "/transactions", json=liability_entry(accounts["Bank"], "80000.00", "WE_OWE")
        )
        liability_id = created.json()["liability"]["id"]
        await operator_client.post(f"/liabilities/{liability_id}/payments", json=payment("80000.00"))

        response = await admin_client.get("/admin/audit-logs", params={"action": "PAY_LIABILITY"})
        entries = response.json()
        assert len(entries) == 1
        details = entries[0]["details"]
        assert details["liability_id"] == liability_id
        assert details["old_status"] == "PENDING"
        assert details["new_status"] == "PAID"

        credit = await admin_client.get(
            "/admin/audit-logs", params={"action": "CREATE_TRANSACTION_CREDIT"}
        )
        assert any(e["details"].get("liability_id") == liability_id for e in credit.json())


class TestAging:
    """Tests for the overdue sweep and reminders."""

    async def test_sweep_marks_past_due_only(self, session_factory, admin_user, accounts, read_balance):
        bank = accounts["Bank"]
        late = await new_liability(session_factory, admin_user.id, bank, "100.00", dt.date(2025, 1, 5))
        due_today = await new_liability(session_factory, admin_user.id, bank, "200.00", dt.date(2025, 1, 10))
        future = await new_liability(session_factory, admin_user.id, bank, "300.00", dt.date(2025, 1, 20))

        async with session_scope(session_factory) as db:
            result = await liability_service.sweep_overdue(db, now=dt.date(2025, 1, 10))
        assert result.updated_count == 1
        assert result.liability_ids == [late]

        async with session_scope(session_factory) as db:
            statuses = {
                row.id: row.status
                for row in (await db.execute(select(Liability))).scalars()
            }
        assert statuses[late] is LiabilityStatus.OVERDUE
        assert statuses[due_today] is LiabilityStatus.PENDING
        assert statuses[future] is LiabilityStatus.PENDING
        assert await read_balance(bank) == Decimal("1000000.00")

    async def test_sweep_is_idempotent(self, operator_client, session_factory, admin_user, accounts):
        await new_liability(session_factory, admin_user.id, accounts["Bank"], "100.00", dt.date(2025, 1, 5))

        first = await operator_client.post("/liabilities/sweep", json={"as_of": "2025-01-10"})
        second = await operator_client.post("/liabilities/sweep", json={"as_of": "2025-01-10"})
        assert first.json()["updated_count"] == 1
        assert second.json()["updated_count"] == 0

    async def test_sweep_skips_paid(self, operator_client, session_factory, admin_user, accounts):
        liability_id = await new_liability(
            session_factory, admin_user.id, accounts["Bank"], "100.00", dt.date(2025, 1, 5)
        )
        await operator_client.post(f"/liabilities/{liability_id}/payments", json=payment("100.00"))

        response = await operator_client.post("/liabilities/sweep", json={"as_of": "2025-01-10"})
        assert response.json()["updated_count"] == 0

    async def test_overdue_liability_can_still_be_paid(
        self, operator_client, session_factory, admin_user, accounts
    ):
        liability_id = await new_liability(
            session_factory, admin_user.id, accounts["Bank"], "100.00", dt.date(2025, 1, 5)
        )
        await operator_client.post("/liabilities/sweep", json={"as_of": "2025-01-10"})

        response = await operator_client.post(
            f"/liabilities/{liability_id}/payments", json=payment("100.00")
        )
        assert response.status_code == 201
        assert response.json()["liability"]["status"] == "PAID"

    async def test_reminder_summary(self, operator_client, session_factory, admin_user, accounts):
        bank = accounts["Bank"]
        await new_liability(session_factory, admin_user.id, bank, "100.00", dt.date(2025, 1, 5))
        await new_liability(session_factory, admin_user.id, bank, "200.00", dt.date(2025, 1, 12))
        await new_liability(session_factory, admin_user.id, bank, "300.00", dt.date(2025, 1, 17))
        await new_liability(session_factory, admin_user.id, bank, "400.00", dt.date(2025, 1, 18))
        await operator_client.post("/liabilities/sweep", json={"as_of": "2025-01-10"})

        response = await operator_client.get(
            "/liabilities/reminders/summary", params={"as_of": "2025-01-10", "days_ahead": 7}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["upcoming_count"] == 2
        assert Decimal(data["upcoming_total_amount"]) == Decimal("500.00")
        assert data["overdue_count"] == 1
        assert Decimal(data["overdue_total_amount"]) == Decimal("100.00")

    async def test_summary_does_not_sweep(self, operator_client, session_factory, admin_user, accounts):
        await new_liability(session_factory, admin_user.id, accounts["Bank"], "100.00", dt.date(2025, 1, 5))

        response = await operator_client.get(
            "/liabilities/reminders/summary", params={"as_of": "2025-01-10"}
        )
        assert response.json()["overdue_count"] == 0

        listed = await operator_client.get("/liabilities", params={"status": "PENDING"})
        assert len(listed.json()) == 1

    async def test_generate_reminders(self, operator_client, admin_client, session_factory, admin_user, accounts):
        bank = accounts["Bank"]
        late = await new_liability(
            session_factory, admin_user.id, bank, "100.00", dt.date(2025, 1, 5), vendor="Toko Buku"
        )
        soon = await new_liability(
            session_factory, admin_user.id, bank, "200.00", dt.date(2025, 1, 13), vendor="Katering"
        )
        await new_liability(session_factory, admin_user.id, bank, "300.00", dt.date(2025, 3, 1))

        response = await operator_client.post(
            "/liabilities/reminders", json={"as_of": "2025-01-10", "days_ahead": 7}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["swept_count"] == 1
        assert [(r["liability"]["id"], r["days_until_due"]) for r in data["upcoming"]] == [(str(soon), 3)]
        assert [(r["liability"]["id"], r["days_overdue"]) for r in data["overdue"]] == [(str(late), 5)]
        assert data["overdue"][0]["liability"]["status"] == "OVERDUE"

        audit = await admin_client.get(
            "/admin/audit-logs", params={"action": "GENERATE_LIABILITY_REMINDERS"}
        )
        assert len(audit.json()) == 1
        assert audit.json()[0]["details"]["overdue_count"] == 1

    async def test_list_filters(self, operator_client, session_factory, admin_user, accounts):
        bank = accounts["Bank"]
        await new_liability(session_factory, admin_user.id, bank, "100.00", dt.date(2025, 1, 5))
        await new_liability(session_factory, admin_user.id, bank, "200.00", dt.date(2025, 2, 5))

        response = await operator_client.get(
            "/liabilities", params={"due_from": "2025-02-01", "due_to": "2025-02-28"}
        )
        assert [Decimal(item["amount"]) for item in response.json()] == [Decimal("200.00")]
