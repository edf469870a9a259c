import random
from datetime import datetime
from pathlib import Path

import pytest

from shop_assistant.cart import CartManager
from shop_assistant.catalog import CatalogLoader, ImageLibrary
from shop_assistant.checkout import CheckoutFlow
from shop_assistant.commands import CommandRouter
from shop_assistant.intent_classifier import IntentClassifier, ResponseCatalog
from shop_assistant.invoice import TextInvoiceService
from shop_assistant.orchestrator import ConversationOrchestrator
from shop_assistant.product_resolver import ProductResolver
from shop_assistant.session_store import SessionStore

DATA_DIR = Path(__file__).resolve().parents[1] / "shop_assistant" / "data"

FIXED_NOW = datetime(2024, 3, 15, 10, 30)


@pytest.fixture
def catalog():
    index, meta = CatalogLoader(DATA_DIR / "products.json").load()
    assert meta is not None
    return index


@pytest.fixture
def resolver(catalog):
    return ProductResolver(catalog)


@pytest.fixture
def sessions():
    return SessionStore()


@pytest.fixture
def cart():
    return CartManager()


@pytest.fixture
def invoices(tmp_path):
    return TextInvoiceService(
        tmp_path / "invoices",
        "Monasterio de la Trapa",
        clock=lambda: FIXED_NOW,
        rng=random.Random(7),
    )


@pytest.fixture
def checkout(sessions, cart, invoices):
    return CheckoutFlow(sessions, cart, invoices)


@pytest.fixture
def router(catalog, resolver, cart, sessions, checkout):
    return CommandRouter(catalog, resolver, cart, sessions, checkout)


@pytest.fixture
def images_dir(tmp_path):
    path = tmp_path / "images"
    path.mkdir()
    return path


@pytest.fixture
def orchestrator(catalog, sessions, cart, resolver, router, checkout, images_dir):
    return ConversationOrchestrator(
        catalog=catalog,
        sessions=sessions,
        cart=cart,
        resolver=resolver,
        router=router,
        checkout=checkout,
        classifier=IntentClassifier(),
        responses=ResponseCatalog.from_file(DATA_DIR / "responses.json", rng=random.Random(0)),
        images=ImageLibrary(images_dir),
    )
