"""Customer lookup by phone number: Supabase first, CSV file as fallback."""

from __future__ import annotations

import csv
import functools
import logging
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import CustomerRecord

logger = logging.getLogger(__name__)


class CustomerLookup(Protocol):
    batch_size: int

    def find_by_phone_numbers(self, numbers: Sequence[str]) -> list[CustomerRecord]:
        ...


def _pick(row: dict, *keys: str) -> Optional[str]:
    for key in keys:
        value = row.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def record_from_row(row: dict[str, Any]) -> CustomerRecord:
    """Build a record from a stored row, accepting camelCase and snake_case columns."""

    lat_lng = _pick(row, "latLng", "lat_lng", "Lat Lng")
    if lat_lng is None and row.get("latitude") not in (None, "") and row.get("longitude") not in (None, ""):
        lat_lng = f"{row['latitude']},{row['longitude']}"
    return CustomerRecord(
        mobile_number=_pick(row, "mobileNumber", "mobile_number", "Mobile Number") or "",
        name=_pick(row, "name", "Name"),
        house_number=_pick(row, "houseNumber", "house_number", "House Number"),
        region=_pick(row, "region", "Region"),
        address=_pick(row, "address", "Address"),
        lat_lng=lat_lng,
        order_list=_pick(row, "orderList", "order_list", "Order List"),
        price=_pick(row, "price", "Price"),
        raw=dict(row),
    )


class SupabaseCustomerLookup:
    """Query the customers table with an ``in`` filter on the mobile number."""

    def __init__(
        self,
        client: Any = None,
        table: str | None = None,
        store_id: str | None = None,
        batch_size: int | None = None,
    ) -> None:
        self.client = client or get_supabase_client()
        if self.client is None:
            raise ValueError("Supabase is not configured.")
        self.table = table or settings.customers_table
        self.store_id = store_id if store_id is not None else settings.store_id
        self.batch_size = batch_size or settings.lookup_batch_size

    def find_by_phone_numbers(self, numbers: Sequence[str]) -> list[CustomerRecord]:
        if not numbers:
            return []
        if len(numbers) > self.batch_size:
            raise ValueError(f"At most {self.batch_size} phone numbers per lookup (got {len(numbers)}).")

        query = self.client.table(self.table).select("*").in_("mobile_number", list(numbers))
        if self.store_id:
            query = query.eq("store_id", self.store_id)
        response = query.execute()
        return [record_from_row(row) for row in (response.data or [])]


@functools.lru_cache(maxsize=1)
def load_customers(source: Optional[Path] = None) -> dict[str, CustomerRecord]:
    """Load customers from the configured CSV file, keyed by mobile number."""

    csv_path = (source or settings.customer_file)
    if not csv_path.exists():
        raise FileNotFoundError(f"Customer file not found: {csv_path}")

    customers: dict[str, CustomerRecord] = {}
    with csv_path.open(mode="r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            raise ValueError(f"Customer file '{csv_path}' is missing a header row.")
        for row in reader:
            record = record_from_row(row)
            if not record.mobile_number:
                continue  # ignore rows without a phone number
            customers.setdefault(record.mobile_number, record)
    return customers


class CsvCustomerLookup:
    """Lookup backed by a local CSV export, used when Supabase is not configured."""

    def __init__(self, source: Optional[Path] = None, batch_size: int | None = None) -> None:
        self.source = source
        self.batch_size = batch_size or settings.lookup_batch_size

    def find_by_phone_numbers(self, numbers: Sequence[str]) -> list[CustomerRecord]:
        if len(numbers) > self.batch_size:
            raise ValueError(f"At most {self.batch_size} phone numbers per lookup (got {len(numbers)}).")
        customers = load_customers(self.source)
        return [customers[number] for number in numbers if number in customers]


def get_customer_lookup() -> CustomerLookup:
    """Pick the Supabase lookup when configured, otherwise the CSV file."""

    client = get_supabase_client()
    if client is not None:
        return SupabaseCustomerLookup(client=client)
    logger.warning(f"Supabase not configured - looking customers up in {settings.customer_file}")
    return CsvCustomerLookup()
