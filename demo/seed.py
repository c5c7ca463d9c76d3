#!/usr/bin/env python3
"""
Demo seed script — populates the books with sample data for demos.

!! NOT FOR PRODUCTION !!
This script creates an operator with a known password and fake ledger
data. It is intended ONLY for local demos and frontend development.

There is no public signup, so create the admin first:
    bookkeeping init-db
    bookkeeping create-user admin@sekolahdemo.id --password AdminDemo123! \\
        --role ADMIN --name "Admin Demo"

Usage:
    # With the API server running on localhost:8000:
    python demo/seed.py

    # Custom server URL / admin credentials:
    python demo/seed.py --base-url http://localhost:9000 \\
        --admin-email admin@sekolahdemo.id --admin-password AdminDemo123!

Login credentials after seeding:
    ┌──────────────────────────────┬───────────────────┬──────────┐
    │ Email                        │ Password          │ Role     │
    ├──────────────────────────────┼───────────────────┼──────────┤
    │ admin@sekolahdemo.id         │ AdminDemo123!     │ ADMIN    │
    │ bendahara@sekolahdemo.id     │ Bendahara123!     │ OPERATOR │
    └──────────────────────────────┴───────────────────┴──────────┘
"""

import argparse
import asyncio
import random
import sys
from datetime import date, timedelta

import httpx

BASE_URL = "http://localhost:8000"

OPERATOR = {
    "email": "bendahara@sekolahdemo.id",
    "password": "Bendahara123!",
    "name": "Bu Bendahara",
    "role": "OPERATOR",
}

# name -> (is_bank, opening balance)
ACCOUNTS = {
    "Bank": (True, "25000000.00"),
    "Pendaftaran": (False, "0.00"),
    "SPP": (False, "0.00"),
    "Kegiatan": (False, "1500000.00"),
    "Lain-lain": (False, "500000.00"),
}

CATEGORIES = [
    ("Uang Pendaftaran", "DEBIT", "Pendaftaran"),
    ("SPP Bulanan", "DEBIT", "SPP"),
    ("Iuran Kegiatan", "DEBIT", "Kegiatan"),
    ("Gaji Guru", "CREDIT", None),
    ("Listrik dan Air", "CREDIT", None),
    ("Alat Tulis", "CREDIT", "Lain-lain"),
]

STUDENTS = [
    ("Siti Aminah", "2025001"),
    ("Budi Santoso", "2025002"),
    ("Dewi Lestari", "2025003"),
    ("Agus Prasetyo", "2025004"),
    ("Rina Wulandari", "2025005"),
]

EXPENSES = ["Fotokopi soal", "Beli kapur", "Konsumsi rapat", "Servis AC", "Kebersihan"]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    print(f"  {msg}")


def rupiah(amount: str) -> str:
    return f"Rp {float(amount):,.2f}"


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def login(client: httpx.AsyncClient, email: str, password: str) -> str:
    resp = await client.post(f"{BASE_URL}/auth/login", json={"email": email, "password": password})
    resp.raise_for_status()
    return resp.json()["token"]


async def post(client: httpx.AsyncClient, token: str, path: str, body: dict) -> dict:
    resp = await client.post(f"{BASE_URL}{path}", json=body, headers=auth_header(token))
    if resp.status_code >= 400:
        log(f"{path} rejected ({resp.status_code}): {resp.json().get('detail')}")
        return {}
    return resp.json()


async def record(client: httpx.AsyncClient, token: str, account_id: str, txn_type: str,
                 amount: str, description: str, entry_date: date, **extra) -> dict:
    return await post(client, token, "/transactions", {
        "date": entry_date.isoformat(),
        "description": description,
        "amount": amount,
        "type": txn_type,
        "account_id": account_id,
        **extra,
    })


# ---------------------------------------------------------------------------
# Seed logic
# ---------------------------------------------------------------------------

async def seed(base_url: str, admin_email: str, admin_password: str) -> None:
    global BASE_URL
    BASE_URL = base_url

    print("\n========================================")
    print("  DEMO SEED — NOT FOR PRODUCTION")
    print("========================================\n")

    today = date.today()

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            health = await client.get(f"{BASE_URL}/health")
            health.raise_for_status()
        except (httpx.ConnectError, httpx.HTTPStatusError):
            print(f"  ERROR: Cannot connect to {BASE_URL}")
            print("  Start the server first: uvicorn bookkeeping.main:app --reload\n")
            sys.exit(1)

        try:
            admin_token = await login(client, admin_email, admin_password)
        except httpx.HTTPStatusError:
            print(f"  ERROR: Cannot log in as {admin_email}")
            print("  Create the admin first: bookkeeping create-user ... --role ADMIN\n")
            sys.exit(1)

        # --- Operator ---
        print("Creating operator...")
        await post(client, admin_token, "/admin/users", OPERATOR)
        token = await login(client, OPERATOR["email"], OPERATOR["password"])
        log(f"Login: {OPERATOR['email']} / {OPERATOR['password']}")

        # --- Accounts ---
        print("\nCreating financial accounts...")
        account_ids: dict[str, str] = {}
        for name, (is_bank, opening) in ACCOUNTS.items():
            data = await post(client, admin_token, "/financial-accounts", {
                "name": name, "is_bank": is_bank, "opening_balance": opening,
            })
            if data:
                account_ids[name] = data["id"]
                log(f"{name:<12} {rupiah(opening)}{'  (bank)' if is_bank else ''}")
        if len(account_ids) != len(ACCOUNTS):
            print("\n  Accounts already exist; the database looks seeded already.\n")
            sys.exit(1)

        # --- Directory ---
        print("\nCreating categories and students...")
        category_ids: dict[str, str] = {}
        for name, txn_type, account in CATEGORIES:
            body = {"name": name, "type": txn_type}
            if account:
                body["financial_account_id"] = account_ids[account]
            data = await post(client, token, "/categories", body)
            category_ids[name] = data["id"]
        student_ids = []
        for name, nis in STUDENTS:
            data = await post(client, token, "/students", {"name": name, "nis": nis})
            student_ids.append(data["id"])
        log(f"{len(category_ids)} categories, {len(student_ids)} students")

        # --- Two months of entries ---
        print("\nRecording entries...")
        count = 0
        for month_offset in (60, 30):
            month_day = today - timedelta(days=month_offset)
            for student_id in student_ids:
                await record(
                    client, token, account_ids["SPP"], "DEBIT", "350000.00",
                    f"SPP {month_day:%B %Y}", month_day,
                    category_id=category_ids["SPP Bulanan"], student_id=student_id,
                )
                count += 1
            await record(
                client, token, account_ids["Bank"], "CREDIT", "12000000.00",
                f"Gaji guru {month_day:%B %Y}", month_day + timedelta(days=1),
                category_id=category_ids["Gaji Guru"],
            )
            count += 1
            for _ in range(random.randint(3, 6)):
                amount = f"{random.randint(10, 150) * 1000}.00"
                await record(
                    client, token, account_ids["Lain-lain"], "CREDIT", amount,
                    random.choice(EXPENSES), month_day + timedelta(days=random.randint(0, 25)),
                    category_id=category_ids["Alat Tulis"],
                )
                count += 1
        await record(
            client, token, account_ids["Pendaftaran"], "DEBIT", "2500000.00",
            "Pendaftaran siswa baru", today - timedelta(days=10),
            category_id=category_ids["Uang Pendaftaran"], student_id=student_ids[-1],
        )
        log(f"{count + 1} entries")

        # --- Transfer ---
        print("\nTransferring SPP to the bank...")
        await post(client, token, "/transfers", {
            "date": (today - timedelta(days=5)).isoformat(),
            "description": "Setor SPP",
            "amount": "3000000.00",
            "source_account_id": account_ids["SPP"],
            "destination_account_id": account_ids["Bank"],
        })
        log(f"Transfer of {rupiah('3000000.00')} SPP -> Bank")

        # --- Liabilities ---
        print("\nRecording liabilities...")
        desks = await record(
            client, token, account_ids["Kegiatan"], "CREDIT", "4000000.00",
            "Pengadaan meja kelas", today - timedelta(days=20),
            is_liability=True, vendor_name="CV Sumber Jaya",
            due_date=(today + timedelta(days=5)).isoformat(), liability_direction="WE_OWE",
        )
        if desks.get("liability"):
            await post(client, token, f"/liabilities/{desks['liability']['id']}/payments", {
                "amount": "1500000.00", "description": "Cicilan pertama",
            })
            log("CV Sumber Jaya: 4,000,000 owed, 1,500,000 paid")

        await record(
            client, token, account_ids["Lain-lain"], "CREDIT", "300000.00",
            "Pinjaman koperasi guru", today - timedelta(days=40),
            is_liability=True, vendor_name="Koperasi Guru",
            due_date=(today - timedelta(days=3)).isoformat(), liability_direction="WE_ARE_OWED",
        )
        log("Koperasi Guru: 300,000 lent, past due")

        sweep = await post(client, token, "/liabilities/sweep", {})
        log(f"Sweep marked {sweep.get('updated_count', 0)} liabilities OVERDUE")

        # --- Summary ---
        resp = await client.get(f"{BASE_URL}/financial-accounts/overview", headers=auth_header(token))
        overview = resp.json()

    print("\n========================================")
    print("  SEED COMPLETE")
    print("========================================")
    for account in overview["accounts"]:
        log(f"{account['name']:<12} {rupiah(account['balance'])}")
    log(f"Operating total: {rupiah(overview['total_operating_balance'])}")
    print()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the school books with demo data")
    parser.add_argument("--base-url", default=BASE_URL, help=f"API base URL (default: {BASE_URL})")
    parser.add_argument("--admin-email", default="admin@sekolahdemo.id")
    parser.add_argument("--admin-password", default="AdminDemo123!")
    args = parser.parse_args()

    asyncio.run(seed(args.base_url, args.admin_email, args.admin_password))


if __name__ == "__main__":
    main()
