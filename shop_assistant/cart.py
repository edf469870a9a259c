from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List

from .product_resolver import ProductMatch
from .utils import format_price

logger = logging.getLogger("shop.cart")

EMPTY_CART_MESSAGE = "Tu carrito está vacío. Escribe *ver productos* para ver el catálogo."
CART_COMMANDS_FOOTER = (
    "Comandos disponibles:\n"
    "➕ *añadir [producto]* - Añadir producto (se preguntará la cantidad)\n"
    "➕ *añadir [cantidad] [producto]* - Añadir cantidad específica\n"
    "➖ *quitar [número]* - Quitar un producto\n"
    "✅ *finalizar compra* - Proceder al pago\n"
    "❌ *vaciar carrito* - Cancelar la compra"
)


@dataclass
class CartItem:
    name: str
    price: Decimal
    category: str
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


class CartManager:
    """Per-user ordered cart lines keyed by (name, category)."""

    def __init__(self) -> None:
        self._carts: Dict[str, List[CartItem]] = {}
        self._guard = threading.Lock()

    def _cart(self, user_id: str) -> List[CartItem]:
        with self._guard:
            return self._carts.setdefault(user_id, [])

    def add(self, user_id: str, product: ProductMatch, quantity: int = 1) -> List[CartItem]:
        """Purpose: Add a product to the user's cart, merging repeated lines.
        Inputs/Outputs: Inputs are user_id, resolved product, and quantity >= 1; returns
            a copy of the updated cart.
        Side Effects / State: Mutates the user's cart list.
        Dependencies: Uses ProductMatch name/category as the line key.
        Failure Modes: quantity < 1 raises ValueError; callers validate first.
        If Removed: Nothing can reach the cart and checkout always sees it empty.
        Testing Notes: Adding the same product with 2 then 3 yields one line with 5.
        """
        if quantity < 1:
            raise ValueError("quantity must be >= 1")
        cart = self._cart(user_id)
        for item in cart:
            if item.name == product.name and item.category == product.category:
                item.quantity += quantity
                break
        else:
            cart.append(
                CartItem(name=product.name, price=product.price, category=product.category, quantity=quantity)
            )
        logger.info("user=%s cart_add=%s qty=%d lines=%d", user_id, product.name, quantity, len(cart))
        return self.items(user_id)

    def items(self, user_id: str) -> List[CartItem]:
        return [
            CartItem(name=item.name, price=item.price, category=item.category, quantity=item.quantity)
            for item in self._cart(user_id)
        ]

    def count(self, user_id: str) -> int:
        """Total units across all lines."""
        return sum(item.quantity for item in self._cart(user_id))

    def remove(self, user_id: str, index: int) -> bool:
        """Remove the line at 0-based ``index``; False when out of range."""
        cart = self._cart(user_id)
        if 0 <= index < len(cart):
            removed = cart.pop(index)
            logger.info("user=%s cart_remove=%s", user_id, removed.name)
            return True
        return False

    def total(self, user_id: str) -> Decimal:
        return sum((item.subtotal for item in self._cart(user_id)), Decimal("0"))

    def summary(self, user_id: str) -> str:
        cart = self._cart(user_id)
        if not cart:
            return EMPTY_CART_MESSAGE
        lines = ["🛒 *Resumen de tu carrito:*\n"]
        for position, item in enumerate(cart, start=1):
            lines.append(
                f"{position}. {item.name} ({item.category})\n"
                f"   Precio: {format_price(item.price)} x {item.quantity} = {format_price(item.subtotal)}\n"
            )
        lines.append(f"💰 *Total: {format_price(self.total(user_id))}*\n")
        lines.append(CART_COMMANDS_FOOTER)
        return "\n".join(lines)

    def clear(self, user_id: str) -> None:
        with self._guard:
            self._carts[user_id] = []
        logger.info("user=%s cart_cleared", user_id)
