"""
Concurrency tests.

Each task below runs its own unit of work against the same database file,
so they really race for the write lock. They verify:
  - Concurrent entries on one account are all applied (no lost updates)
    and the entry chain stays unbroken
  - Opposing transfers between two accounts neither deadlock nor lose money
  - Two full payments racing on one liability settle it exactly once
"""

import asyncio
import datetime as dt
from decimal import Decimal

from bookkeeping.database import session_scope
from bookkeeping.exceptions import AlreadySettledError
from bookkeeping.models.liability import LiabilityDirection
from bookkeeping.services import account_service, liability_service, transaction_service

TODAY = dt.date(2025, 1, 15)


class TestConcurrentEntries:

    async def test_no_lost_updates(self, session_factory, accounts, admin_user, read_balance):
        async def deposit(n: int):
            async with session_scope(session_factory) as db:
                await transaction_service.record_transaction(
                    db,
                    entry_date=TODAY,
                    description=f"SPP siswa {n}",
                    amount="1000.00",
                    txn_type="DEBIT",
                    account_id=accounts["SPP"],
                    author_id=admin_user.id,
                )

        await asyncio.gather(*(deposit(n) for n in range(10)))

        assert await read_balance(accounts["SPP"]) == Decimal("10000.00")
        async with session_scope(session_factory) as db:
            report = await account_service.get_balance(db, accounts["SPP"])
        assert report["match"] is True
        assert report["entry_count"] == 10
        assert report["chain_breaks"] == []

    async def test_opposing_transfers(self, session_factory, accounts, admin_user, read_balance):
        bank, spp = accounts["Bank"], accounts["SPP"]

        async def move(source, destination, amount):
            async with session_scope(session_factory) as db:
                await transaction_service.record_transfer(
                    db,
                    entry_date=TODAY,
                    description="Pindah dana",
                    amount=amount,
                    source_account_id=source,
                    destination_account_id=destination,
                    author_id=admin_user.id,
                )

        # Seed SPP so both directions can succeed
        await move(bank, spp, "100000.00")

        await asyncio.gather(
            *(move(bank, spp, "1000.00") for _ in range(5)),
            *(move(spp, bank, "500.00") for _ in range(5)),
        )

        bank_balance = await read_balance(bank)
        spp_balance = await read_balance(spp)
        assert bank_balance + spp_balance == Decimal("1000000.00")
        assert spp_balance == Decimal("102500.00")


class TestConcurrentSettlement:

    async def test_double_settlement_prevented(self, session_factory, accounts, admin_user, read_balance):
        async with session_scope(session_factory) as db:
            liability = await liability_service.create_liability(
                db,
                vendor_name="CV Sumber Jaya",
                amount="500000.00",
                due_date=dt.date(2025, 2, 10),
                direction=LiabilityDirection.WE_OWE,
                author_id=admin_user.id,
                account_id=accounts["Bank"],
            )
            liability_id = liability.id

        async def pay():
            async with session_scope(session_factory) as db:
                return await liability_service.pay_liability(
                    db,
                    liability_id,
                    amount="500000.00",
                    description="Pelunasan",
                    author_id=admin_user.id,
                    payment_date=TODAY,
                )

        results = await asyncio.gather(pay(), pay(), return_exceptions=True)

        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], AlreadySettledError)

        assert await read_balance(accounts["Bank"]) == Decimal("500000.00")
        async with session_scope(session_factory) as db:
            settled = await liability_service.get_liability(db, liability_id)
            payments = await liability_service.get_payments(db, liability_id)
        assert settled.paid_amount == Decimal("500000.00")
        assert len(payments) == 1
