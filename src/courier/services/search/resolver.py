"""Resolve a comma-separated batch of phone numbers into delivery stops."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List

from ...data.customers_repository import CustomerLookup
from ...models.domain import CustomerRecord, Stop
from ..geospatial import parse_lat_lng

logger = logging.getLogger(__name__)

PHONE_NUMBER_PATTERN = re.compile(r"[0-9]{10}")


@dataclass(frozen=True, slots=True)
class SearchError:
    entry: str
    kind: str  # "invalid" | "not_found" | "lookup_failed"
    message: str


@dataclass(slots=True)
class SearchResult:
    stops: List[Stop] = field(default_factory=list)
    errors: List[SearchError] = field(default_factory=list)


def split_entries(raw_text: str) -> list[str]:
    return [entry.strip() for entry in raw_text.split(",") if entry.strip()]


def _parse_amount(value: str | None, phone_number: str) -> float:
    if not value:
        return 0.0
    try:
        return float(value.replace(",", "").replace("₹", "").strip())
    except ValueError:
        logger.warning(f"Unparseable amount '{value}' for {phone_number}; using 0")
        return 0.0


def stop_from_record(record: CustomerRecord) -> Stop:
    coordinates = parse_lat_lng(record.lat_lng)
    if record.lat_lng and coordinates is None:
        logger.info(f"Customer {record.mobile_number} has malformed coordinates '{record.lat_lng}'")
    return Stop(
        id=record.mobile_number,
        display_name=record.name or "Unknown",
        phone_number=record.mobile_number,
        address=record.address,
        coordinates=coordinates,
        order_summary=record.order_list,
        amount_due=_parse_amount(record.price, record.mobile_number),
    )


class SearchResolver:
    def __init__(self, lookup: CustomerLookup, *, batch_size: int | None = None) -> None:
        self.lookup = lookup
        self.batch_size = batch_size or getattr(lookup, "batch_size", 10)

    def resolve(self, raw_text: str) -> SearchResult:
        result = SearchResult()

        numbers: list[str] = []
        seen: set[str] = set()
        for entry in split_entries(raw_text):
            if not PHONE_NUMBER_PATTERN.fullmatch(entry):
                result.errors.append(SearchError(entry, "invalid", f"'{entry}' is not a valid 10-digit number."))
                continue
            if entry not in seen:
                seen.add(entry)
                numbers.append(entry)

        settled: set[str] = set()
        for start in range(0, len(numbers), self.batch_size):
            chunk = numbers[start : start + self.batch_size]
            try:
                records = self.lookup.find_by_phone_numbers(chunk)
            except Exception as exc:
                logger.warning(f"Customer lookup failed for {len(chunk)} number(s): {exc}")
                result.errors.extend(
                    SearchError(number, "lookup_failed", "Customer lookup is unavailable; try again.")
                    for number in chunk
                )
                settled.update(chunk)
                continue

            requested = set(chunk)
            for record in records:
                if record.mobile_number not in requested or record.mobile_number in settled:
                    continue
                settled.add(record.mobile_number)
                result.stops.append(stop_from_record(record))

        result.errors.extend(
            SearchError(number, "not_found", f"No customer found for {number}.")
            for number in numbers
            if number not in settled
        )
        return result
