from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from dotenv import load_dotenv

from .cart import CartManager
from .catalog import CatalogLoader, ImageLibrary
from .checkout import CheckoutFlow
from .commands import CommandRouter
from .config import Settings, load_settings
from .intent_classifier import IntentClassifier, ResponseCatalog
from .invoice import TextInvoiceService
from .models import CartLine, CartSnapshot, ChatRequest, ChatResponse, SessionView
from .orchestrator import ConversationOrchestrator
from .product_resolver import ProductResolver
from .session_store import SessionStore
from .utils import format_price

BASE_DIR = Path(__file__).resolve().parent

log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()
log_level = getattr(logging, log_level_name, logging.INFO)
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

logging.getLogger("shop").setLevel(log_level)
logger = logging.getLogger("shop.app")

ENV_PATH = BASE_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH, override=True)


@dataclass
class ShopServices:
    """Everything one running assistant needs, built once at startup."""
    settings: Settings
    sessions: SessionStore
    cart: CartManager
    orchestrator: ConversationOrchestrator


def build_services(settings: Settings) -> ShopServices:
    """Purpose: Load the catalog and responses and wire every collaborator.
    Inputs/Outputs: Input is Settings; output is a ShopServices bundle.
    Side Effects / State: Reads the catalog and responses files once.
    Dependencies: CatalogLoader, ResponseCatalog, TextInvoiceService, and the core components.
    Failure Modes: Unreadable data files degrade to an empty catalog or fallback replies.
    If Removed: The HTTP layer has no orchestrator to call.
    Testing Notes: Build from a temp catalog and drive the orchestrator directly.
    """
    catalog, meta = CatalogLoader(settings.catalog_path).load()
    if meta is None:
        logger.warning("catalog=%s status=degraded", settings.catalog_path)
    responses = ResponseCatalog.from_file(settings.responses_path)
    sessions = SessionStore(idle_ttl_sec=settings.session_idle_ttl_sec)
    cart = CartManager()
    resolver = ProductResolver(catalog)
    checkout = CheckoutFlow(sessions, cart, TextInvoiceService(settings.invoices_dir, settings.store_name))
    router = CommandRouter(catalog, resolver, cart, sessions, checkout)
    orchestrator = ConversationOrchestrator(
        catalog=catalog,
        sessions=sessions,
        cart=cart,
        resolver=resolver,
        router=router,
        checkout=checkout,
        classifier=IntentClassifier(),
        responses=responses,
        images=ImageLibrary(settings.images_dir),
    )
    return ShopServices(settings=settings, sessions=sessions, cart=cart, orchestrator=orchestrator)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    services = build_services(settings or load_settings())
    api = FastAPI(title=f"{services.settings.store_name} - Asistente de compras")

    @api.post("/api/chat", response_model=ChatResponse)
    def chat(request: ChatRequest) -> ChatResponse:
        """Purpose: Handle one chat message and return the assistant's reply.
        Inputs/Outputs: Input is ChatRequest; output is ChatResponse with text and refs.
        Side Effects / State: Mutates the user's session and cart through the orchestrator.
        Dependencies: Uses ConversationOrchestrator.handle_turn.
        Failure Modes: Internal errors are answered with a generic apology, never a 500.
        If Removed: Core chat functionality is unavailable.
        Testing Notes: Send "ver productos" and verify the catalog listing comes back.
        """
        context = services.orchestrator.handle_turn(request.user_id, request.message)
        reply = context.reply
        return ChatResponse(
            text=reply.text if reply else "",
            image_ref=reply.image_ref if reply else None,
            document_ref=reply.document_ref if reply else None,
            route=context.route,
        )

    @api.get("/api/cart/{user_id}", response_model=CartSnapshot)
    def get_cart(user_id: str) -> CartSnapshot:
        """Return the user's cart lines and total for operators."""
        items = services.cart.items(user_id)
        return CartSnapshot(
            user_id=user_id,
            items=[
                CartLine(
                    name=item.name,
                    category=item.category,
                    price=format_price(item.price),
                    quantity=item.quantity,
                    subtotal=format_price(item.subtotal),
                )
                for item in items
            ],
            units=services.cart.count(user_id),
            total=format_price(services.cart.total(user_id)),
        )

    @api.get("/api/sessions/{user_id}", response_model=SessionView)
    def get_session(user_id: str) -> SessionView:
        """Return the user's flow state with contact data masked."""
        data = services.sessions.get(user_id).as_log_dict()
        return SessionView(user_id=user_id, **data)

    return api


app = create_app()
