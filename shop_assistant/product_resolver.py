from __future__ import annotations

"""Fuzzy resolution of free text to a single orderable product or variant.

Resolution runs in two phases. A variant-aware pass first looks for size/color
phrasing ("12 cm color blanco") or literal variant names, because scored matching
on whole product names cannot tell variants apart. When no variant is accepted, a
scored pass ranks every product by name containment and keeps the best one above
a confidence floor.
"""

import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Protocol

from . import messages
from .catalog import CatalogIndex, Product, Variant
from .utils import format_price, normalize_text

logger = logging.getLogger("shop.resolver")

MIN_ACCEPT_SCORE = 40.0
EXACT_SCORE = 100.0
CATEGORY_BONUS = 25.0
MIN_ORDER_PHRASE_LEN = 3

SIZE_RE = re.compile(r"\b(\d+(?:\.\d+)?)\s*cm\b")
COLOR_RE = re.compile(r"\bcolor\s+([a-z]+)\b")
ORDER_CONNECTORS_RE = re.compile(r"\b(quiero comprar|comprar|me gustaria|quisiera|necesito|quiero|pedir)\b")


@dataclass(frozen=True)
class ProductMatch:
    """Orderable resolution result: a plain product or a product variant."""
    name: str
    price: Decimal
    category: str

    @classmethod
    def from_product(cls, product: Product) -> "ProductMatch":
        return cls(name=product.name, price=product.price, category=product.category)

    @classmethod
    def from_variant(cls, product: Product, variant: Variant) -> "ProductMatch":
        return cls(name=product.variant_display_name(variant), price=variant.price, category=product.category)


@dataclass
class Resolution:
    """Outcome of resolve(): the orderable match plus the product it came from."""
    match: Optional[ProductMatch] = None
    product: Optional[Product] = None
    score: float = 0.0


@dataclass
class OrderLookup:
    """Reply text for a purchase request and, when found, the product to pin."""
    text: str
    found: bool
    product: Optional[ProductMatch] = None


class VariantMatcher(Protocol):
    def matches(self, query: str, product: Product, variant: Variant) -> bool:
        ...


def extract_size(normalized: str) -> Optional[Decimal]:
    match = SIZE_RE.search(normalized)
    return Decimal(match.group(1)) if match else None


def extract_color(normalized: str) -> Optional[str]:
    match = COLOR_RE.search(normalized)
    return match.group(1) if match else None


def _contains_either(left: str, right: str) -> bool:
    if not left or not right:
        return False
    return left in right or right in left


class SizeColorVariantMatcher:
    """Heuristic variant matcher based on "<n> cm" and "color <word>" tokens.

    Two variants sharing the same size and color are not told apart; the first one
    in catalog order wins.
    """

    def matches(self, query: str, product: Product, variant: Variant) -> bool:
        variant_name = normalize_text(variant.name)
        size = extract_size(query)
        color = extract_color(query)
        if size is not None and color:
            if extract_size(variant_name) == size and color in variant_name.split():
                return True
        # A bare product-name fragment must not pick an arbitrary variant.
        if query in normalize_text(product.name):
            return False
        full_name = normalize_text(f"{product.name} {variant.name}")
        return _contains_either(variant_name, query) or _contains_either(full_name, query)


def score_product(query: str, product: Product) -> float:
    """Purpose: Score how well a normalized query names a product.
    Inputs/Outputs: Inputs are normalized query and Product; output is a float score.
    Side Effects / State: None.
    Dependencies: Uses normalize_text on product and category names.
    Failure Modes: Empty query or name scores 0.
    If Removed: Partial product names can no longer be resolved.
    Testing Notes: Equal names -> 100; "frasco" vs "frasco de 500 ml" -> 50 + 20*6/16.
    """
    # Exact beats "query contains name" beats "name contains query".
    name = normalize_text(product.name)
    if not query or not name:
        return 0.0
    if query == name:
        score = EXACT_SCORE
    elif name in query:
        score = 75.0 + 20.0 * (len(name) / len(query))
    elif query in name:
        score = 50.0 + 20.0 * (len(query) / len(name))
    else:
        return 0.0
    category = normalize_text(product.category)
    if category and category in query:
        score += CATEGORY_BONUS
    return score


class ProductResolver:
    def __init__(self, catalog: CatalogIndex, variant_matcher: Optional[VariantMatcher] = None) -> None:
        self._catalog = catalog
        self._variant_matcher: VariantMatcher = variant_matcher or SizeColorVariantMatcher()

    def resolve(self, text: str) -> Resolution:
        """Purpose: Run the variant-aware pass, then the scored pass, over the catalog.
        Inputs/Outputs: Input is free text; output is a Resolution (match None on miss).
        Side Effects / State: Logs the winning candidate at debug level.
        Dependencies: Uses the configured VariantMatcher and score_product.
        Failure Modes: Scores at or below MIN_ACCEPT_SCORE are a miss. A winning product
            with variants yields product set but match None (not directly orderable).
        If Removed: Purchase intents and "añadir" commands cannot find products.
        Testing Notes: "12 cm color blanco" picks the variant; "xyz" resolves nothing.
        """
        query = normalize_text(text)
        if not query:
            return Resolution()

        for _, product in self._catalog.all_products():
            for variant in product.variants:
                if self._variant_matcher.matches(query, product, variant):
                    logger.debug("query=%s variant=%s", query, product.variant_display_name(variant))
                    return Resolution(
                        match=ProductMatch.from_variant(product, variant),
                        product=product,
                        score=EXACT_SCORE,
                    )

        best: Optional[Product] = None
        best_score = 0.0
        for _, product in self._catalog.all_products():
            score = score_product(query, product)
            if score > best_score:
                best, best_score = product, score

        if best is None or best_score <= MIN_ACCEPT_SCORE:
            logger.debug("query=%s status=no_match best_score=%.1f", query, best_score)
            return Resolution(score=best_score)
        logger.debug("query=%s product=%s score=%.1f", query, best.name, best_score)
        if best.has_variants:
            return Resolution(product=best, score=best_score)
        return Resolution(match=ProductMatch.from_product(best), product=best, score=best_score)

    def resolve_exact(self, text: str) -> Optional[ProductMatch]:
        return self.resolve(text).match

    def search(self, term: str) -> List[Product]:
        """Case-insensitive substring filter over every product name."""
        wanted = normalize_text(term)
        if not wanted:
            return []
        return [product for _, product in self._catalog.all_products() if wanted in normalize_text(product.name)]

    def resolve_in_category(self, category: str, text: str) -> Optional[Product]:
        return self._catalog.product_in_category(category, text)

    def lookup_order(self, text: str) -> OrderLookup:
        """Purpose: Turn a purchase request ("quiero comprar ...") into a reply.
        Inputs/Outputs: Input is the raw message; output is an OrderLookup.
        Side Effects / State: None; the caller pins the product on success.
        Dependencies: Uses resolve() and the catalog for category suggestions.
        Failure Modes: Short phrases, variant-only products, category-only mentions, and
            misses all return found=False with an explanatory text.
        If Removed: The purchase-intent step has no way to explain a miss.
        Testing Notes: "quiero comprar miel" with a "Miel de Abeja" category lists it.
        """
        # Strip connector words so only the product phrase is scored.
        phrase = ORDER_CONNECTORS_RE.sub(" ", normalize_text(text))
        phrase = re.sub(r"\s+", " ", phrase).strip()
        if len(phrase) < MIN_ORDER_PHRASE_LEN:
            return OrderLookup(text=messages.ORDER_NEEDS_DETAIL, found=False)

        resolution = self.resolve(phrase)
        if resolution.match:
            match = resolution.match
            return OrderLookup(
                text=messages.render_quantity_prompt(match.name, format_price(match.price), match.category),
                found=True,
                product=match,
            )
        if resolution.product and resolution.product.has_variants:
            return OrderLookup(text=messages.render_variant_options(resolution.product), found=False)

        for category in self._catalog.categories():
            if phrase in normalize_text(category.name):
                return OrderLookup(text=messages.render_category_suggestions(category), found=False)

        logger.info("phrase=%s status=order_not_found", phrase)
        return OrderLookup(text=messages.ORDER_NOT_FOUND, found=False)
