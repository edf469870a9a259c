import random
import re
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from shop_assistant.cart import CartItem
from shop_assistant.invoice import TextInvoiceService, generate_invoice_number
from shop_assistant.validators import CustomerData

CUSTOMER = CustomerData(name="María Pérez", address="Calle 1", phone="0991234567", valid=True)
ITEMS = [CartItem(name="Frasco de 500 ml", price=Decimal("8.00"), category="Miel de Abeja", quantity=2)]


def test_invoice_number_format():
    number = generate_invoice_number(datetime(2024, 3, 5), random.Random(3))
    assert re.fullmatch(r"MON-240305-\d{4}", number)


def test_invoice_is_written_as_text(tmp_path):
    service = TextInvoiceService(tmp_path, "Monasterio de la Trapa", clock=lambda: datetime(2024, 3, 5, 9, 0))
    invoice = service.create_invoice(CUSTOMER, ITEMS, Decimal("16.00"))
    assert re.fullmatch(r"MON-240305-\d{4}", invoice.number)
    assert invoice.document_ref is not None
    content = Path(invoice.document_ref).read_text(encoding="utf-8")
    assert invoice.number in content
    assert "TOTAL: $16,00" in content
    assert "María Pérez" in content


def test_unwritable_output_still_numbers_the_order(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    service = TextInvoiceService(blocker / "invoices", "Monasterio de la Trapa")
    invoice = service.create_invoice(CUSTOMER, ITEMS, Decimal("16.00"))
    assert invoice.document_ref is None
    assert invoice.number.startswith("MON-")
