import re
import unicodedata
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional


def normalize_text(text: str) -> str:
    """Purpose: Normalize free-form text for stable matching across the assistant.
    Inputs/Outputs: Input is a raw string; output is a lowercase ASCII-only string with
        diacritics removed and whitespace collapsed.
    Side Effects / State: None; pure function.
    Dependencies: Uses unicodedata and regex; called by commands, resolver, and classifier.
    Failure Modes: Returns an empty string when input is falsy; punctuation other than
        "-", "_", "/" and "." is replaced by spaces.
    If Removed: "imágenes"/"imagenes" and "añadir"/"anadir" stop matching the same command.
    Testing Notes: "Añadir 2 Frasco" -> "anadir 2 frasco"; "  Cómo  comprar " -> "como comprar".
    """
    # Lowercase, strip diacritics, then collapse punctuation and whitespace.
    if not text:
        return ""
    lowered = text.lower()
    decomposed = unicodedata.normalize("NFD", lowered)
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    cleaned = re.sub(r"[^a-z0-9\s\-_/.]+", " ", stripped)
    return re.sub(r"\s+", " ", cleaned).strip()


def normalize_key(text: str) -> str:
    """Purpose: Produce a compact normalization key without spaces.
    Inputs/Outputs: Input is a raw string; output is normalized string with spaces removed.
    Side Effects / State: None; pure function.
    Dependencies: Calls normalize_text; used for JSON key synonyms.
    Failure Modes: Returns empty string for falsy input; otherwise deterministic.
    If Removed: Catalog field synonyms ("Nombre", "nombre ") stop resolving.
    Testing Notes: Ensure spaces are removed after normalization.
    """
    return normalize_text(text).replace(" ", "")


def contains_any(normalized: str, keywords: Iterable[str]) -> bool:
    """Return True if any normalized keyword is a substring of ``normalized``."""
    if not normalized:
        return False
    return any(normalize_text(keyword) in normalized for keyword in keywords if keyword)


def format_price(value: Decimal) -> str:
    """Purpose: Render a money amount the way the shop prints prices.
    Inputs/Outputs: Input is a Decimal; output is "$12,50" style text.
    Side Effects / State: None.
    Dependencies: Decimal quantization with ROUND_HALF_UP.
    Failure Modes: None for finite Decimals.
    If Removed: Cart, catalog, and invoice renderers disagree on price format.
    Testing Notes: Decimal("3") -> "$3,00"; Decimal("2.345") -> "$2,35".
    """
    quantized = Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return "$" + f"{quantized:.2f}".replace(".", ",")


def to_decimal(value: object) -> Optional[Decimal]:
    """Convert a JSON number or numeric string to Decimal, or None when unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip().replace(",", "."))
    except (ArithmeticError, ValueError):
        return None
    if not amount.is_finite() or amount < 0:
        return None
    return amount
