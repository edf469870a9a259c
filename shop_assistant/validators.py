from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger("shop.validators")

PICKUP_PLACEHOLDER = "Recoge en Monasterio"
MIN_NAME_LEN = 3
PHONE_RUN_RE = re.compile(r"\d{7,15}")
QUANTITY_RE = re.compile(r"\d{1,6}")


@dataclass(frozen=True)
class CustomerData:
    """Customer record collected during checkout; valid=False keeps partial input."""
    name: str
    address: str
    phone: str
    valid: bool


def validate_customer_data(text: str) -> CustomerData:
    """Purpose: Split and validate the free-text customer data sent during checkout.
    Inputs/Outputs: Input is the raw message; output is a CustomerData with valid flag.
    Side Effects / State: Logs rejected fields with the phone masked.
    Dependencies: Uses PHONE_RUN_RE and mask_contact_value.
    Failure Modes: Fewer than 2 non-empty lines, a short or numeric-only name, or a
        phone without a 7-15 digit run all return valid=False with parsed fields.
    If Removed: Checkout cannot move from datos_cliente to confirmacion.
    Testing Notes: "Jo\\n123" -> invalid; "María Pérez\\nCalle 1\\n0991234567" -> valid.
    """
    # One field per line; with two lines the second one is the phone and pickup is assumed.
    lines = [line.strip() for line in (text or "").splitlines() if line.strip()]
    if len(lines) < 2:
        return CustomerData(name="", address="", phone="", valid=False)

    name = lines[0]
    address = lines[1] if len(lines) >= 3 else PICKUP_PLACEHOLDER
    phone = lines[2] if len(lines) >= 3 else lines[1]

    if len(name) < MIN_NAME_LEN or name.isdigit():
        logger.info("field=name status=invalid length=%d", len(name))
        return CustomerData(name=name, address=address, phone=phone, valid=False)

    # Looser rule: a 7-15 digit run anywhere in the digit-only projection is enough.
    digits = re.sub(r"\D", "", phone)
    if not PHONE_RUN_RE.search(digits):
        logger.info("field=phone status=invalid phone=%s", mask_contact_value(phone))
        return CustomerData(name=name, address=address, phone=phone, valid=False)

    return CustomerData(name=name, address=address, phone=phone, valid=True)


def parse_positive_int(text: str) -> Optional[int]:
    """Return the integer in a digits-only token when it is >= 1, else None."""
    token = (text or "").strip()
    if not QUANTITY_RE.fullmatch(token):
        return None
    value = int(token)
    return value if value >= 1 else None


def mask_contact_value(value: object) -> str:
    """Purpose: Mask contact-like values for safe logging.
    Inputs/Outputs: Input is any value; output is a masked string with last digits only.
    Side Effects / State: None.
    Dependencies: Uses regex digit extraction.
    Failure Modes: Non-numeric inputs yield a generic mask.
    If Removed: Logs may expose customer phone numbers.
    Testing Notes: Verify outputs for short and long numeric strings.
    """
    # Keep only the last digits while hiding the rest.
    if value is None:
        return ""
    digits = re.findall(r"\d", str(value))
    if len(digits) < 4:
        return "***"
    return "***" + "".join(digits[-3:])
