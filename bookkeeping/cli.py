"""
Command-line entry point (`bookkeeping ...`).

Administrative tasks that run against the database directly, without the
HTTP server:

    bookkeeping init-db
    bookkeeping create-user admin@school.id --password ... --role ADMIN --name "Admin"
    bookkeeping create-account "Bank" --bank --opening-balance 1000000 --user admin@school.id
    bookkeeping sweep-overdue [--as-of 2025-01-31]
    bookkeeping reminders [--days 7] [--as-of 2025-01-31]

sweep-overdue is meant for an external scheduler (cron, systemd timer);
the API process runs no background jobs. Each command is one unit of work
(database.session_scope): it either commits completely or not at all.
"""

import argparse
import asyncio
import datetime as dt
import logging
import sys
from decimal import Decimal

from sqlalchemy import select

from bookkeeping.config import settings
from bookkeeping.database import AsyncSessionLocal, Base, engine, session_scope
from bookkeeping.exceptions import BookkeepingError, UserNotFoundError
from bookkeeping.logging_config import configure_logging
from bookkeeping.models.user import User, UserRole
from bookkeeping.services import account_service, auth_service, liability_service

logger = logging.getLogger(__name__)


async def _find_user(db, email: str) -> User:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFoundError(detail=f"No user with email {email}")
    return user


async def init_db(args: argparse.Namespace) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print(f"Database ready: {settings.DATABASE_URL}")


async def create_user(args: argparse.Namespace) -> None:
    async with session_scope(AsyncSessionLocal) as db:
        user = await auth_service.create_user(
            db,
            email=args.email,
            password=args.password,
            name=args.name,
            role=UserRole(args.role),
        )
    print(f"Created {user.role.value} {user.email} ({user.id})")


async def create_account(args: argparse.Namespace) -> None:
    async with session_scope(AsyncSessionLocal) as db:
        author = await _find_user(db, args.user)
        account = await account_service.create_account(
            db,
            name=args.name,
            author_id=author.id,
            is_bank=args.bank,
            opening_balance=args.opening_balance,
        )
    print(f"Created account {account.name} ({account.id}) balance {account.balance}")


async def sweep_overdue(args: argparse.Namespace) -> None:
    async with session_scope(AsyncSessionLocal) as db:
        result = await liability_service.sweep_overdue(db, now=args.as_of)
    print(f"Marked {result.updated_count} liabilities OVERDUE")


async def reminders(args: argparse.Namespace) -> None:
    async with session_scope(AsyncSessionLocal) as db:
        report = await liability_service.generate_reminders(
            db, author_id=None, now=args.as_of, horizon_days=args.days
        )

    print(f"As of {report['as_of']} ({report['swept_count']} newly overdue)")
    print(f"Due within {report['horizon_days']} days: {len(report['upcoming'])}")
    for item in report["upcoming"]:
        liability = item["liability"]
        print(
            f"  {liability.vendor_name:<30} {liability.remaining_amount:>15} "
            f"due {liability.due_date} (in {item['days_until_due']} days)"
        )
    print(f"Overdue: {len(report['overdue'])}")
    for item in report["overdue"]:
        liability = item["liability"]
        print(
            f"  {liability.vendor_name:<30} {liability.remaining_amount:>15} "
            f"due {liability.due_date} ({item['days_overdue']} days late)"
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bookkeeping", description="School bookkeeping administration")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("init-db", help="Create all tables")
    p.set_defaults(handler=init_db)

    p = sub.add_parser("create-user", help="Create an ADMIN or OPERATOR user")
    p.add_argument("email")
    p.add_argument("--password", required=True)
    p.add_argument("--name")
    p.add_argument("--role", choices=[r.value for r in UserRole], default=UserRole.OPERATOR.value)
    p.set_defaults(handler=create_user)

    p = sub.add_parser("create-account", help="Create a financial account")
    p.add_argument("name")
    p.add_argument("--bank", action="store_true", help="Exclude from the operating balance")
    p.add_argument("--opening-balance", type=Decimal, default=Decimal("0.00"))
    p.add_argument("--user", required=True, help="Email of the user recorded as author")
    p.set_defaults(handler=create_account)

    p = sub.add_parser("sweep-overdue", help="Mark past-due PENDING liabilities OVERDUE")
    p.add_argument("--as-of", type=dt.date.fromisoformat, default=None, help="YYYY-MM-DD (default today)")
    p.set_defaults(handler=sweep_overdue)

    p = sub.add_parser("reminders", help="Sweep, then list liabilities due soon and overdue")
    p.add_argument("--days", type=int, default=settings.REMINDER_DAYS_AHEAD)
    p.add_argument("--as-of", type=dt.date.fromisoformat, default=None, help="YYYY-MM-DD (default today)")
    p.set_defaults(handler=reminders)

    return parser


async def _run(args: argparse.Namespace) -> None:
    try:
        await args.handler(args)
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    try:
        asyncio.run(_run(args))
    except BookkeepingError as exc:
        logger.error("%s failed: %s", args.command, exc.detail)
        print(f"Error: {exc.detail}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
