"""UPI payment payloads rendered as a QR code per stop."""

from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol
from urllib.parse import quote

logger = logging.getLogger(__name__)


def format_amount(amount: float) -> str:
    """Render an amount the way UPI apps expect: no trailing zeros, at most two decimals."""
    text = f"{amount:.2f}".rstrip("0").rstrip(".")
    return text or "0"


def build_payment_uri(payee_id: str, amount: float, payer_name: str | None, currency: str = "INR") -> str:
    name = quote(payer_name or "", safe="")
    return f"upi://pay?pa={payee_id}&pn={name}&am={format_amount(amount)}&cu={currency}"


def payment_target(stop_id: str) -> str:
    return f"qr_{stop_id}"


class PaymentCodeSink(Protocol):
    def render_payment_code(self, payee_id: str, amount: float, payer_name: str | None, target: str) -> None:
        ...

    def discard(self, target: str) -> None:
        ...

    def clear(self) -> None:
        ...

    def get(self, target: str) -> Optional[str]:
        ...


class PaymentCodeBoard:
    """Keeps the UPI payload per target; the client draws the QR image."""

    def __init__(self, currency: str = "INR") -> None:
        self.currency = currency
        self._codes: Dict[str, str] = {}

    def render_payment_code(self, payee_id: str, amount: float, payer_name: str | None, target: str) -> None:
        self._codes[target] = build_payment_uri(payee_id, amount, payer_name, self.currency)

    def discard(self, target: str) -> None:
        self._codes.pop(target, None)

    def clear(self) -> None:
        self._codes.clear()

    def get(self, target: str) -> Optional[str]:
        return self._codes.get(target)

    def __len__(self) -> int:
        return len(self._codes)
