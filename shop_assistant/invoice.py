from __future__ import annotations

"""Invoice collaborator: order identifiers and plain-text invoice documents."""

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Callable, List, Optional, Protocol

from .cart import CartItem
from .utils import format_price
from .validators import CustomerData

logger = logging.getLogger("shop.invoice")

INVOICE_PREFIX = "MON"


@dataclass(frozen=True)
class Invoice:
    number: str
    text: str
    document_ref: Optional[str] = None


class InvoiceService(Protocol):
    def create_invoice(self, customer: CustomerData, items: List[CartItem], total: Decimal) -> Invoice:
        ...


def generate_invoice_number(now: Optional[datetime] = None, rng: Optional[random.Random] = None) -> str:
    """Return ``MON-YYMMDD-NNNN`` with a zero-padded 4-digit random suffix."""
    now = now or datetime.now()
    suffix = (rng or random).randint(0, 9999)
    return f"{INVOICE_PREFIX}-{now:%y%m%d}-{suffix:04d}"


def render_invoice_text(
    store_name: str, number: str, customer: CustomerData, items: List[CartItem], total: Decimal, issued_at: datetime
) -> str:
    lines = [
        "*FACTURA DE COMPRA*",
        f"*{store_name}*\n",
        f"📝 *Nº Factura:* {number}",
        f"📅 *Fecha:* {issued_at:%d/%m/%Y %H:%M}\n",
        "👤 *DATOS DEL CLIENTE:*",
        f"Nombre: {customer.name}",
        f"Dirección: {customer.address}",
        f"Teléfono: {customer.phone}\n",
        "📋 *DETALLE DE COMPRA:*\n",
    ]
    for position, item in enumerate(items, start=1):
        lines.append(
            f"{position}. {item.name}\n"
            f"   Precio unit: {format_price(item.price)}\n"
            f"   Cantidad: {item.quantity}\n"
            f"   Subtotal: {format_price(item.subtotal)}\n"
        )
    lines.extend(
        [
            "📊 *RESUMEN:*",
            f"Subtotal: {format_price(total)}",
            f"IVA (0%): {format_price(Decimal('0'))}",
            f"*TOTAL: {format_price(total)}*\n",
            "✅ *¡GRACIAS POR SU COMPRA!*",
            "Su pedido ha sido registrado y será procesado a la brevedad.",
        ]
    )
    return "\n".join(lines)


class TextInvoiceService:
    """Writes each invoice as a UTF-8 text file and returns its path as document ref."""

    def __init__(
        self,
        output_dir: Path,
        store_name: str,
        clock: Callable[[], datetime] = datetime.now,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._output_dir = output_dir
        self._store_name = store_name
        self._clock = clock
        self._rng = rng

    def create_invoice(self, customer: CustomerData, items: List[CartItem], total: Decimal) -> Invoice:
        """Purpose: Number the order and render its invoice document.
        Inputs/Outputs: Inputs are validated customer data, cart snapshot, and total;
            output is an Invoice (document_ref None when the file cannot be written).
        Side Effects / State: Creates output_dir and writes factura-<number>.txt.
        Dependencies: Uses generate_invoice_number and render_invoice_text.
        Failure Modes: OSError on write is logged; the order is still numbered.
        If Removed: Confirmed orders get no identifier and no invoice.
        Testing Notes: Use tmp_path and check the file exists and the number format.
        """
        issued_at = self._clock()
        number = generate_invoice_number(issued_at, self._rng)
        text = render_invoice_text(self._store_name, number, customer, items, total, issued_at)
        document_ref: Optional[str] = None
        try:
            self._output_dir.mkdir(parents=True, exist_ok=True)
            path = self._output_dir / f"factura-{number}.txt"
            path.write_text(text, encoding="utf-8")
            document_ref = str(path)
        except OSError as exc:
            logger.error("invoice=%s status=write_failed error=%s", number, exc)
        logger.info("invoice=%s items=%d total=%s document=%s", number, len(items), total, bool(document_ref))
        return Invoice(number=number, text=text, document_ref=document_ref)
