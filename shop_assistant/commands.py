from __future__ import annotations

"""Explicit shop commands ("carrito", "añadir 2 ...", "quitar 1", ...).

Commands are deterministic and run before any intent inference, so a message that
looks like a command is never reinterpreted as conversation.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

from . import messages
from .cart import CartManager
from .catalog import CatalogIndex
from .checkout import CheckoutFlow
from .messages import Reply
from .product_resolver import ProductResolver, Resolution
from .session_store import FlowState, SessionStore
from .utils import format_price, normalize_text
from .validators import parse_positive_int

logger = logging.getLogger("shop.commands")

VIEW_CART = frozenset({"carrito", "ver carrito"})
FINALIZE = frozenset({"finalizar compra"})
CLEAR_CART = frozenset({"vaciar carrito", "cancelar compra"})
HELP = frozenset({"ayuda", "help", "como comprar"})
LIST_PRODUCTS = "ver productos"
BROWSE_IMAGES = "ver imagenes"
ADD_PREFIXES = ("anadir", "agregar")
REMOVE_PREFIXES = ("quitar", "eliminar", "borrar")
SEARCH_PREFIX = "buscar"

# First word of the raw message followed by the rest, keeping the user's casing.
PREFIX_SPLIT_RE = re.compile(r"^\s*(\S+)\s*(.*)$", re.DOTALL)


@dataclass(frozen=True)
class CommandResult:
    command: str
    reply: Reply


def _starts_with_word(normalized: str, prefixes) -> Optional[str]:
    first = normalized.split(" ", 1)[0] if normalized else ""
    return first if first in prefixes else None


def _rest_after_first_word(text: str) -> str:
    match = PREFIX_SPLIT_RE.match(text or "")
    return match.group(2).strip() if match else ""


class CommandRouter:
    def __init__(
        self,
        catalog: CatalogIndex,
        resolver: ProductResolver,
        cart: CartManager,
        sessions: SessionStore,
        checkout: CheckoutFlow,
        help_text: Callable[[], str] = lambda: messages.HELP_MESSAGE,
    ) -> None:
        self._catalog = catalog
        self._resolver = resolver
        self._cart = cart
        self._sessions = sessions
        self._checkout = checkout
        self._help_text = help_text

    def route(self, user_id: str, text: str) -> Optional[CommandResult]:
        """Purpose: Recognize and execute an explicit command.
        Inputs/Outputs: Inputs are user_id and raw text; output is a CommandResult, or None
            when the message is not a command.
        Side Effects / State: May mutate the cart and the session flow.
        Dependencies: Uses CartManager, ProductResolver, CheckoutFlow, and SessionStore.
        Failure Modes: Bad arguments produce usage or "not found" replies, never errors.
        If Removed: Cart management and checkout entry stop working.
        Testing Notes: "añadir 2 Frasco de 500 ml" adds two units; "hola" returns None.
        """
        normalized = normalize_text(text)
        if not normalized:
            return None

        if normalized in VIEW_CART:
            return CommandResult("view_cart", Reply(self._cart.summary(user_id)))
        if normalized in FINALIZE:
            return CommandResult("finalize", self._checkout.start(user_id))
        if normalized in CLEAR_CART:
            self._cart.clear(user_id)
            # Clearing also abandons any pending quantity prompt or checkout.
            self._sessions.update(user_id, flow=FlowState.NONE, customer=None)
            return CommandResult("clear_cart", Reply(messages.CART_CLEARED))
        if normalized in HELP:
            return CommandResult("help", Reply(self._help_text()))
        if LIST_PRODUCTS in normalized:
            return CommandResult("list_products", Reply(messages.render_catalog(self._catalog)))
        if BROWSE_IMAGES in normalized:
            self._sessions.update(user_id, flow=FlowState.CATEGORY_MENU)
            return CommandResult("browse_images", Reply(messages.render_category_menu(self._catalog)))

        if _starts_with_word(normalized, ADD_PREFIXES):
            return CommandResult("add", self._add(user_id, _rest_after_first_word(text)))
        if _starts_with_word(normalized, REMOVE_PREFIXES):
            return CommandResult("remove", self._remove(user_id, _rest_after_first_word(text)))
        if _starts_with_word(normalized, (SEARCH_PREFIX,)):
            return CommandResult("search", self._search(_rest_after_first_word(text)))
        return None

    def _add(self, user_id: str, args: str) -> Reply:
        if not args:
            return Reply(messages.ADD_USAGE)
        first, _, remainder = args.partition(" ")
        quantity = parse_positive_int(first)
        if quantity is not None:
            phrase = remainder.strip()
            if not phrase:
                return Reply(messages.ADD_USAGE)
            resolution = self._resolver.resolve(phrase)
            if resolution.match is None:
                return self._unresolved(phrase, resolution)
            product = resolution.match
            self._cart.add(user_id, product, quantity)
            self._sessions.update(user_id, flow=FlowState.PRODUCT_ADDED)
            return Reply(
                f"✅ Añadido al carrito: {product.name} x{quantity}\n\n"
                f"Precio por unidad: {format_price(product.price)}\n"
                f"Total: {format_price(product.price * quantity)}\n\n"
                "Escribe *carrito* para ver tu carrito de compras."
            )

        resolution = self._resolver.resolve(args)
        if resolution.match is None:
            return self._unresolved(args, resolution)
        product = resolution.match
        self._sessions.update(user_id, flow=FlowState.AWAITING_QUANTITY, pending_product=product)
        logger.info("user=%s pinned_product=%s", user_id, product.name)
        return Reply(messages.render_quantity_prompt(product.name, format_price(product.price), product.category))

    def _remove(self, user_id: str, args: str) -> Reply:
        if not args:
            return Reply(messages.REMOVE_USAGE)
        position = parse_positive_int(args.split()[0])
        if position is None:
            return Reply(messages.REMOVE_INVALID_NUMBER)
        if not self._cart.remove(user_id, position - 1):
            return Reply(messages.REMOVE_NOT_FOUND)
        return Reply("✅ Producto eliminado del carrito.\n\n" + self._cart.summary(user_id))

    def _search(self, term: str) -> Reply:
        if not term:
            return Reply(messages.SEARCH_USAGE)
        return Reply(messages.render_search_results(term, self._resolver.search(term)))

    @staticmethod
    def _unresolved(phrase: str, resolution: Resolution) -> Reply:
        # Products sold only through variants list their options instead of a miss.
        if resolution.product is not None and resolution.product.has_variants:
            return Reply(messages.render_variant_options(resolution.product))
        return Reply(f'No encontré el producto "{phrase}". Verifica el nombre exacto en el catálogo.')
