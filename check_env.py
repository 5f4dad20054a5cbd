#!/usr/bin/env python3
"""Check the .env file and report how customer lookup and routing are configured."""

import os
import sys
from pathlib import Path

TEMPLATE = """# Supabase customer lookup (leave empty to use the CSV fallback)
COURIER_SUPABASE_URL=https://your-project-id.supabase.co
COURIER_SUPABASE_KEY=your-service-role-key-here
COURIER_CUSTOMERS_TABLE=customers
# COURIER_STORE_ID=tanakpur

# CSV fallback
COURIER_CUSTOMER_FILE=./data/customers.csv

# OSRM routing
COURIER_OSRM_BASE_URL=https://router.project-osrm.org

# Payments
COURIER_PAYEE_UPI_ID=your-upi-id@bank
"""


def _mask(value: str) -> str:
    return value[:20] + "..." + value[-6:] if len(value) > 30 else value


def main():
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Courier Dispatch Environment Checker")
    print("=" * 60)

    if not env_file.exists():
        env_file.write_text(TEMPLATE, encoding="utf-8")
        print(f"❌ .env file NOT found; created a template at {env_file}")
        print("⚠️  Edit it and run this script again.")
        return 1

    print(f"✅ Found .env file at: {env_file}")
    for name in ("COURIER_SUPABASE_URL", "COURIER_SUPABASE_KEY", "COURIER_OSRM_BASE_URL"):
        value = os.getenv(name)
        print(f"{'✅' if value else '❌'} {name} (from environment): {_mask(value) if value else 'not set'}")
    print()

    sys.path.insert(0, str(project_root / "src"))
    try:
        from courier.config import settings
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        return 1

    if settings.supabase_url and settings.supabase_key:
        print(f"✅ Customer lookup: Supabase table '{settings.customers_table}'")
    elif settings.customer_file.exists():
        print(f"✅ Customer lookup: CSV file {settings.customer_file}")
    else:
        print(f"❌ Customer lookup: Supabase not configured and {settings.customer_file} does not exist")
    print(f"{'✅' if settings.osrm_base_url else '❌'} Routing: {settings.osrm_base_url or 'not configured'}")
    print(f"ℹ️  Payee UPI id: {settings.payee_upi_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
