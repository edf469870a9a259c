from __future__ import annotations

"""Checkout state machine: customer data -> confirmation -> completed | cancelled."""

import logging
from enum import Enum
from typing import List

from . import messages
from .cart import CartItem, CartManager
from .invoice import InvoiceService
from .messages import Reply
from .session_store import CheckoutStage, FlowState, Session, SessionStore
from .utils import format_price, normalize_text
from .validators import CustomerData, mask_contact_value, validate_customer_data

logger = logging.getLogger("shop.checkout")

CONFIRM_PHRASES = frozenset({"si", "si confirmo", "confirmo"})


class CheckoutState(str, Enum):
    NONE = "none"
    AWAITING_CUSTOMER_DATA = "awaiting_customer_data"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def checkout_state(session: Session) -> CheckoutState:
    """Project the session's flow and stage onto the checkout state machine."""
    if session.flow == FlowState.ORDER_COMPLETED:
        return CheckoutState.COMPLETED
    if session.flow == FlowState.ORDER_CANCELLED:
        return CheckoutState.CANCELLED
    if session.flow != FlowState.CHECKOUT:
        return CheckoutState.NONE
    if session.checkout_stage == CheckoutStage.CUSTOMER_DATA:
        return CheckoutState.AWAITING_CUSTOMER_DATA
    if session.checkout_stage == CheckoutStage.CONFIRMATION:
        return CheckoutState.AWAITING_CONFIRMATION
    return CheckoutState.NONE


def is_confirmation(text: str) -> bool:
    """True only for an explicit yes; "si, pero ..." is not a confirmation."""
    normalized = normalize_text(text).replace(".", " ")
    return " ".join(normalized.split()) in CONFIRM_PHRASES


def render_order_summary(customer: CustomerData, items: List[CartItem], total_text: str) -> str:
    lines = ["📋 *Resumen de tu pedido:*\n"]
    for position, item in enumerate(items, start=1):
        lines.append(f"{position}. {item.name} x{item.quantity} = {format_price(item.subtotal)}")
    lines.append(f"\n💰 *Total: {total_text}*\n")
    lines.append("👤 *Datos de entrega:*")
    lines.append(f"Nombre: {customer.name}")
    lines.append(f"Dirección: {customer.address}")
    lines.append(f"Teléfono: {customer.phone}\n")
    lines.append("¿Confirmas tu pedido? Responde *sí* para confirmar o *no* para cancelar.")
    return "\n".join(lines)


class CheckoutFlow:
    def __init__(self, sessions: SessionStore, cart: CartManager, invoices: InvoiceService) -> None:
        self._sessions = sessions
        self._cart = cart
        self._invoices = invoices

    def state(self, user_id: str) -> CheckoutState:
        return checkout_state(self._sessions.get(user_id))

    def start(self, user_id: str) -> Reply:
        """Enter AWAITING_CUSTOMER_DATA, or refuse when the cart is empty."""
        if self._cart.count(user_id) == 0:
            return Reply(messages.EMPTY_CART_CHECKOUT)
        self._sessions.update(
            user_id, flow=FlowState.CHECKOUT, checkout_stage=CheckoutStage.CUSTOMER_DATA, customer=None
        )
        logger.info("user=%s checkout=started lines=%d", user_id, len(self._cart.items(user_id)))
        return Reply(messages.CUSTOMER_DATA_PROMPT)

    def handle(self, user_id: str, text: str) -> Reply:
        """Purpose: Advance the checkout state machine with one user message.
        Inputs/Outputs: Inputs are user_id and raw text; output is the Reply to send.
        Side Effects / State: Updates session stage/customer, clears the cart on confirm
            or cancel, and asks the invoice service for an order number.
        Dependencies: Uses validate_customer_data, CartManager, and InvoiceService.
        Failure Modes: Invalid data re-prompts without touching state or cart; states with
            nothing to collect return a generic reprompt.
        If Removed: Orders can never be confirmed.
        Testing Notes: Walk datos_cliente -> confirmacion -> "si" and check the MON- id.
        """
        state = self.state(user_id)
        if state == CheckoutState.AWAITING_CUSTOMER_DATA:
            return self._collect_customer_data(user_id, text)
        if state == CheckoutState.AWAITING_CONFIRMATION:
            if is_confirmation(text):
                return self._complete(user_id)
            return self._cancel(user_id)
        logger.info("user=%s checkout=unmatched state=%s", user_id, state.value)
        return Reply(messages.CHECKOUT_REPROMPT)

    def _collect_customer_data(self, user_id: str, text: str) -> Reply:
        customer = validate_customer_data(text)
        if not customer.valid:
            logger.info("user=%s checkout=invalid_customer_data", user_id)
            return Reply(messages.INVALID_CUSTOMER_DATA)
        self._sessions.update(user_id, checkout_stage=CheckoutStage.CONFIRMATION, customer=customer)
        logger.info("user=%s checkout=customer_data phone=%s", user_id, mask_contact_value(customer.phone))
        items = self._cart.items(user_id)
        total = format_price(self._cart.total(user_id))
        return Reply(render_order_summary(customer, items, total))

    def _complete(self, user_id: str) -> Reply:
        session = self._sessions.get(user_id)
        items = self._cart.items(user_id)
        total = self._cart.total(user_id)
        # Stage guarantees a validated customer; the guard keeps the state machine total.
        if session.customer is None or not session.customer.valid:
            self._sessions.update(user_id, checkout_stage=CheckoutStage.CUSTOMER_DATA)
            return Reply(messages.CUSTOMER_DATA_PROMPT)
        invoice = self._invoices.create_invoice(session.customer, items, total)
        self._cart.clear(user_id)
        self._sessions.update(user_id, flow=FlowState.ORDER_COMPLETED, last_order_id=invoice.number)
        logger.info("user=%s checkout=completed order=%s", user_id, invoice.number)
        text = (
            f"🎉 *¡Pedido confirmado!*\n\nTu número de pedido es *{invoice.number}*.\n\n"
            f"{invoice.text}"
        )
        return Reply(text, document_ref=invoice.document_ref)

    def _cancel(self, user_id: str) -> Reply:
        self._cart.clear(user_id)
        self._sessions.update(user_id, flow=FlowState.ORDER_CANCELLED, customer=None)
        logger.info("user=%s checkout=cancelled", user_id)
        return Reply(messages.ORDER_CANCELLED)
