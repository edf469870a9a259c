"""Conversation orchestration for the shop assistant.

Role:
    Runs once per inbound message. It serializes turns per user, reads the session,
    and walks a fixed priority chain of steps; the first step that produces a reply
    ends the turn.

Step contracts (in priority order):
    pending_quantity:
        Only while flow == solicitar_cantidad; the whole message is a quantity.
    commands:
        Explicit commands via CommandRouter (cart, checkout entry, help, listings).
    purchase_intent:
        "quiero comprar" / "comprar" / "pedir" -> ProductResolver.lookup_order.
    checkout:
        Only while flow == checkout; delegates to CheckoutFlow.
    category_menu:
        Only while flow == menu_categorias; a number selects a category, other text
        names a product in the chosen category or a category; small talk falls through.
    implicit_category:
        Only when no flow is active; a bare number or a category name opens it.
    fallback:
        IntentClassifier + canned reply; the products topic opens the category menu.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from . import messages
from .cart import CartManager
from .catalog import CatalogIndex, Category, ImageLibrary
from .checkout import CheckoutFlow
from .commands import CommandRouter
from .intent_classifier import Intent, IntentClassifier, ResponseCatalog
from .messages import Reply
from .product_resolver import ProductResolver
from .session_store import FlowState, Session, SessionStore
from .step_runner import Step, StepRunner
from .utils import contains_any, format_price, normalize_text
from .validators import parse_positive_int

logger = logging.getLogger("shop.orchestrator")

PURCHASE_KEYWORDS = ("quiero comprar", "comprar", "pedir")


@dataclass
class TurnContext:
    """Mutable context passed through each step of a single turn."""
    user_id: str
    message: str
    normalized: str
    session: Session
    route: str = ""
    reply: Optional[Reply] = None
    trace: List[Dict[str, str]] = field(default_factory=list)

    def log(self, step: str, status: str, detail: str = "") -> None:
        self.trace.append({"step": step, "status": status, "detail": detail})


class ConversationOrchestrator:
    def __init__(
        self,
        catalog: CatalogIndex,
        sessions: SessionStore,
        cart: CartManager,
        resolver: ProductResolver,
        router: CommandRouter,
        checkout: CheckoutFlow,
        classifier: IntentClassifier,
        responses: ResponseCatalog,
        images: ImageLibrary,
    ) -> None:
        """Purpose: Wire the collaborators and build the ordered step chain.
        Inputs/Outputs: Inputs are the catalog, stores, resolver, router, checkout flow,
            classifier, canned responses, and image library; no return value.
        Side Effects / State: Constructs a StepRunner with the priority-ordered steps.
        Dependencies: Uses StepRunner/Step and the step methods on this class.
        Failure Modes: None at init; runtime errors are caught in handle_turn.
        If Removed: The chat endpoint has nothing to route messages through.
        Testing Notes: Build with in-memory collaborators and drive full conversations.
        """
        self._catalog = catalog
        self._sessions = sessions
        self._cart = cart
        self._resolver = resolver
        self._router = router
        self._checkout = checkout
        self._classifier = classifier
        self._responses = responses
        self._images = images
        self._runner: StepRunner[TurnContext, Reply] = StepRunner(
            steps=[
                Step("pending_quantity", self._step_pending_quantity, skip_if=_flow_is_not(FlowState.AWAITING_QUANTITY)),
                Step("commands", self._step_commands),
                Step("purchase_intent", self._step_purchase_intent),
                Step("checkout", self._step_checkout, skip_if=_flow_is_not(FlowState.CHECKOUT)),
                Step("category_menu", self._step_category_menu, skip_if=_flow_is_not(FlowState.CATEGORY_MENU)),
                Step("implicit_category", self._step_implicit_category, skip_if=lambda ctx: not ctx.session.flow.is_idle),
                Step("fallback", self._step_fallback),
            ]
        )

    def handle_message(self, user_id: str, body: str) -> Reply:
        return self.handle_turn(user_id, body).reply or Reply(messages.GENERIC_APOLOGY)

    def handle_turn(self, user_id: str, body: str) -> TurnContext:
        """Purpose: Process one inbound message for a user and produce the reply.
        Inputs/Outputs: Inputs are user_id and message body; output is the TurnContext
            holding the reply and the route that produced it.
        Side Effects / State: Holds the user's lock for the whole turn; steps mutate the
            session and cart.
        Dependencies: Uses SessionStore.lock and the StepRunner chain.
        Failure Modes: Any unexpected exception is logged and answered with a generic
            apology; it never reaches the transport.
        If Removed: No message gets an answer.
        Testing Notes: Make a step raise and verify GENERIC_APOLOGY is returned.
        """
        with self._sessions.lock(user_id):
            context = TurnContext(
                user_id=user_id,
                message=body or "",
                normalized=normalize_text(body or ""),
                session=self._sessions.get(user_id),
            )
            logger.info("user=%s flow=%s message=%s", user_id, context.session.flow.value, context.message)
            try:
                outcome = self._runner.run(context)
            except Exception:
                logger.exception("user=%s status=turn_failed", user_id)
                context.route = "error"
                context.reply = Reply(messages.GENERIC_APOLOGY)
                context.log("error", "failed")
                return context
            if outcome is None:
                context.route = "none"
                context.reply = Reply(self._responses.random_reply(Intent.DEFAULT))
            else:
                context.route, context.reply = outcome
            context.log(context.route, "success")
            logger.info(
                "user=%s route=%s flow_after=%s image=%s document=%s",
                user_id,
                context.route,
                self._sessions.get(user_id).flow.value,
                bool(context.reply.image_ref),
                bool(context.reply.document_ref),
            )
            return context

    def _step_pending_quantity(self, context: TurnContext) -> Optional[Reply]:
        product = context.session.pending_product
        quantity = parse_positive_int(context.message)
        if product is None:
            # Pinned product lost; release the flow and let later steps answer.
            self._sessions.update(context.user_id, flow=FlowState.NONE)
            context.session = self._sessions.get(context.user_id)
            return None
        if quantity is None:
            return Reply(messages.ASK_QUANTITY_AGAIN)
        self._cart.add(context.user_id, product, quantity)
        self._sessions.update(context.user_id, flow=FlowState.PRODUCT_ADDED)
        return Reply(
            f"✅ Añadido al carrito: {product.name} x{quantity}\n\n"
            f"Precio por unidad: {format_price(product.price)}\n"
            f"Total: {format_price(product.price * quantity)}\n\n"
            "Escribe *carrito* para ver tu carrito o *finalizar compra* para terminar tu pedido."
        )

    def _step_commands(self, context: TurnContext) -> Optional[Reply]:
        result = self._router.route(context.user_id, context.message)
        if result is None:
            return None
        context.log("commands", "matched", result.command)
        return result.reply

    def _step_purchase_intent(self, context: TurnContext) -> Optional[Reply]:
        if not contains_any(context.normalized, PURCHASE_KEYWORDS):
            return None
        lookup = self._resolver.lookup_order(context.message)
        if lookup.found and lookup.product:
            self._sessions.update(
                context.user_id, flow=FlowState.AWAITING_QUANTITY, pending_product=lookup.product
            )
            logger.info("user=%s pinned_product=%s", context.user_id, lookup.product.name)
        return Reply(lookup.text)

    def _step_checkout(self, context: TurnContext) -> Optional[Reply]:
        return self._checkout.handle(context.user_id, context.message)

    def _step_category_menu(self, context: TurnContext) -> Optional[Reply]:
        # Bare numbers are always menu positions, never product-name fragments.
        numeric = context.normalized.isdigit()
        selected = context.session.selected_category
        if selected and not numeric:
            product = self._resolver.resolve_in_category(selected, context.message)
            if product is not None:
                return Reply(messages.render_product_card(product), image_ref=self._images.locate(product))
        if not numeric and self._catalog.category_by_name_or_number(context.message) < 0:
            if self._classifier.classify(context.message) != Intent.DEFAULT:
                return None
        return self._select_category(context, context.message)

    def _step_implicit_category(self, context: TurnContext) -> Optional[Reply]:
        if context.normalized.isdigit():
            return self._select_category(context, context.normalized)
        for category in self._catalog.categories():
            if normalize_text(category.name) in context.normalized:
                return self._select_category(context, category.name)
        return None

    def _step_fallback(self, context: TurnContext) -> Optional[Reply]:
        intent = self._classifier.classify(context.message)
        context.log("fallback", "classified", intent.value)
        if intent == Intent.PRODUCTS:
            self._sessions.update(context.user_id, flow=FlowState.CATEGORY_MENU, last_topic=intent.value)
            text = f"{self._responses.random_reply(intent)}\n\n{messages.render_category_menu(self._catalog)}"
            return Reply(text)
        self._sessions.update(context.user_id, last_topic=intent.value)
        if intent == Intent.HELP:
            return Reply(messages.HELP_MESSAGE)
        return Reply(self._responses.random_reply(intent))

    def _select_category(self, context: TurnContext, selection: str) -> Reply:
        position = self._catalog.category_by_name_or_number(selection)
        category = self._catalog.category_at(position)
        if category is None:
            return Reply(messages.CATEGORY_NOT_FOUND)
        self._sessions.update(context.user_id, flow=FlowState.CATEGORY_MENU, selected_category=category.name)
        return Reply(messages.render_category_products(category), image_ref=self._first_image(category))

    def _first_image(self, category: Category) -> Optional[str]:
        if not category.products:
            return None
        return self._images.locate(category.products[0])


def _flow_is_not(flow: FlowState):
    return lambda context: context.session.flow != flow
