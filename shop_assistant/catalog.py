from __future__ import annotations

"""Catalog loader and read-only index for the shop's categories and products.

This module loads products.json into Category/Product/Variant objects and provides
the deterministic lookups (by menu number, by name fragment) used by the resolver,
the command router, and the category menu flow.
"""

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .data_loader import load_json_document
from .utils import normalize_key, normalize_text, to_decimal

logger = logging.getLogger("shop.catalog")

CATEGORY_KEYS = ["categoria", "category", "nombre categoria"]
PRODUCTS_KEYS = ["productos", "products", "items"]
NAME_KEYS = ["nombre", "name", "producto"]
PRICE_KEYS = ["precio", "price", "pvp"]
IMAGE_KEYS = ["imagen", "image", "foto"]
VARIANT_KEYS = ["variantes", "variants", "opciones"]


@dataclass(frozen=True)
class Variant:
    """Priced sub-option (size, color) owned by a single product."""
    name: str
    price: Decimal


@dataclass(frozen=True)
class Product:
    """Catalog product; products with variants are ordered through a variant."""
    name: str
    price: Decimal
    category: str
    image: Optional[str] = None
    variants: Tuple[Variant, ...] = ()

    @property
    def has_variants(self) -> bool:
        return bool(self.variants)

    def variant_display_name(self, variant: Variant) -> str:
        return f"{self.name} - {variant.name}"


@dataclass(frozen=True)
class Category:
    name: str
    products: Tuple[Product, ...] = field(default_factory=tuple)


@dataclass
class CatalogMeta:
    """Metadata describing the catalog file version for logging."""
    file_name: str
    updated_at: str
    sha256: str


class CatalogIndex:
    """Immutable in-memory view of categories -> products -> variants."""

    def __init__(self, categories: List[Category]) -> None:
        self._categories: Tuple[Category, ...] = tuple(categories)

    def categories(self) -> List[Category]:
        return list(self._categories)

    def category_names(self) -> List[str]:
        return [category.name for category in self._categories]

    def all_products(self) -> Iterator[Tuple[Category, Product]]:
        """Yield (category, product) pairs in catalog order."""
        for category in self._categories:
            for product in category.products:
                yield category, product

    def category_by_name_or_number(self, selection: str) -> int:
        """Purpose: Resolve a menu selection to a 0-based category position.
        Inputs/Outputs: Input is the raw selection; output is the index or -1.
        Side Effects / State: None.
        Dependencies: Uses normalize_text for accent-insensitive name matching.
        Failure Modes: Out-of-range numbers and unknown names return -1, never raise.
        If Removed: Numeric and by-name category menus stop working.
        Testing Notes: "2" -> 1; "cake" -> index of "Cake"; "99" -> -1.
        """
        # Numbers 1..N select by position; anything else matches by name fragment.
        selected = normalize_text(selection)
        if not selected:
            return -1
        if selected.isdigit():
            number = int(selected)
            if 1 <= number <= len(self._categories):
                return number - 1
            return -1
        for position, category in enumerate(self._categories):
            if selected in normalize_text(category.name):
                return position
        return -1

    def category_at(self, position: int) -> Optional[Category]:
        if 0 <= position < len(self._categories):
            return self._categories[position]
        return None

    def find_category(self, name: str) -> Optional[Category]:
        wanted = normalize_text(name)
        for category in self._categories:
            if normalize_text(category.name) == wanted:
                return category
        return None

    def products_in(self, category: str) -> List[Product]:
        found = self.find_category(category)
        return list(found.products) if found else []

    def product_in_category(self, category: str, name_fragment: str) -> Optional[Product]:
        """First product of ``category`` whose name contains ``name_fragment``."""
        fragment = normalize_text(name_fragment)
        if not fragment:
            return None
        for product in self.products_in(category):
            if fragment in normalize_text(product.name):
                return product
        return None

    def __len__(self) -> int:
        return len(self._categories)


class CatalogLoader:
    def __init__(self, path: Path) -> None:
        """Purpose: Configure the loader with a catalog file path.
        Inputs/Outputs: Input is a Path to products.json; no return value.
        Side Effects / State: Stores the path for later load calls.
        Dependencies: None beyond Path usage.
        Failure Modes: None at init; load() handles read/parse errors.
        If Removed: The catalog snapshot cannot be configured at startup.
        Testing Notes: Instantiate with a temp path and call load().
        """
        self._path = path

    def load(self) -> Tuple[CatalogIndex, Optional[CatalogMeta]]:
        """Purpose: Load and normalize catalog data from the catalog file.
        Inputs/Outputs: No inputs; returns a CatalogIndex and CatalogMeta (None on failure).
        Side Effects / State: Reads file contents and computes hash/mtime; logs the result.
        Dependencies: Uses load_json_document, hashlib, and _parse_category.
        Failure Modes: Missing or malformed files are logged and produce an empty index.
        If Removed: The assistant has no products to resolve, list, or sell.
        Testing Notes: Use a small temp catalog and validate variants and prices.
        """
        # Read, hash, and parse; a broken file degrades to an empty catalog.
        try:
            raw_bytes = self._path.read_bytes()
            data = load_json_document(self._path)
        except (OSError, ValueError) as exc:
            logger.error("catalog=%s status=load_failed error=%s", self._path, exc)
            return CatalogIndex([]), None

        meta = CatalogMeta(
            file_name=self._path.name,
            updated_at=datetime.fromtimestamp(self._path.stat().st_mtime).isoformat(),
            sha256=hashlib.sha256(raw_bytes).hexdigest(),
        )
        records = data.get("categorias", []) if isinstance(data, dict) else data
        if not isinstance(records, list):
            records = []

        categories: List[Category] = []
        for record in records:
            if not isinstance(record, dict):
                continue
            category = _parse_category(record)
            if category:
                categories.append(category)

        index = CatalogIndex(categories)
        logger.info(
            "catalog=%s categories=%d products=%d sha256=%s",
            meta.file_name,
            len(categories),
            sum(len(category.products) for category in categories),
            meta.sha256[:12],
        )
        return index, meta


def _parse_category(record: Dict[str, Any]) -> Optional[Category]:
    name = str(_get_first_value(record, CATEGORY_KEYS) or "").strip()
    if not name:
        return None
    raw_products = _get_first_value(record, PRODUCTS_KEYS) or []
    products: List[Product] = []
    for raw in raw_products if isinstance(raw_products, list) else []:
        if not isinstance(raw, dict):
            continue
        product = _parse_product(raw, name)
        if product:
            products.append(product)
        else:
            logger.warning("category=%s skipped_product=%s", name, raw)
    return Category(name=name, products=tuple(products))


def _parse_product(raw: Dict[str, Any], category: str) -> Optional[Product]:
    name = str(_get_first_value(raw, NAME_KEYS) or "").strip()
    if not name:
        return None
    variants: List[Variant] = []
    raw_variants = _get_first_value(raw, VARIANT_KEYS) or []
    for item in raw_variants if isinstance(raw_variants, list) else []:
        if not isinstance(item, dict):
            continue
        variant_name = str(_get_first_value(item, NAME_KEYS) or "").strip()
        variant_price = to_decimal(_get_first_value(item, PRICE_KEYS))
        if variant_name and variant_price is not None:
            variants.append(Variant(name=variant_name, price=variant_price))
    price = to_decimal(_get_first_value(raw, PRICE_KEYS))
    if price is None:
        # Variant-only products carry no orderable price of their own.
        if not variants:
            return None
        price = Decimal("0")
    image = _get_first_value(raw, IMAGE_KEYS)
    return Product(
        name=name,
        price=price,
        category=category,
        image=str(image).strip() if image else None,
        variants=tuple(variants),
    )


def _get_first_value(item: Dict[str, Any], keys: List[str]) -> Optional[Any]:
    """Find the first non-empty field in a dict by key synonyms."""
    normalized_map = {normalize_key(str(k)): k for k in item.keys()}
    for key in keys:
        actual = normalized_map.get(normalize_key(key))
        if actual is not None and _has_value(item.get(actual)):
            return item.get(actual)
    return None


def _has_value(value: Any) -> bool:
    # Treat None or empty strings as missing values.
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


class ImageLibrary:
    """Resolves product image file names to readable paths under the images folder."""

    def __init__(self, images_dir: Path) -> None:
        self._images_dir = images_dir

    def locate(self, product: Optional[Product]) -> Optional[str]:
        """Return the image path for ``product`` or None; lookup failures never raise."""
        if product is None or not product.image:
            return None
        try:
            path = (self._images_dir / product.image).resolve()
            if path.is_file():
                return str(path)
        except OSError as exc:
            logger.warning("image=%s status=lookup_failed error=%s", product.image, exc)
            return None
        logger.warning("image=%s status=missing dir=%s", product.image, self._images_dir)
        return None
