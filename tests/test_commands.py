from decimal import Decimal

import pytest

from shop_assistant import messages
from shop_assistant.cart import EMPTY_CART_MESSAGE
from shop_assistant.product_resolver import ProductMatch
from shop_assistant.session_store import FlowState

CAKE = ProductMatch(name="Cake de Chocolate", price=Decimal("12.5"), category="Cake")


def test_non_commands_return_none(router):
    assert router.route("u1", "hola") is None
    assert router.route("u1", "") is None


def test_view_cart(router):
    result = router.route("u1", "Ver carrito")
    assert result.command == "view_cart"
    assert result.reply.text == EMPTY_CART_MESSAGE


def test_add_with_quantity_adds_directly(router, cart, sessions):
    result = router.route("u1", "añadir 2 Frasco de 500 ml")
    assert result.command == "add"
    assert "Añadido al carrito: Frasco de 500 ml x2" in result.reply.text
    assert "Total: $16,00" in result.reply.text
    assert cart.count("u1") == 2
    assert sessions.get("u1").flow == FlowState.PRODUCT_ADDED


def test_add_without_quantity_pins_product(router, cart, sessions):
    result = router.route("u1", "agregar Cake de Chocolate")
    session = sessions.get("u1")
    assert session.flow == FlowState.AWAITING_QUANTITY
    assert session.pending_product.name == "Cake de Chocolate"
    assert "¿Cuántas unidades" in result.reply.text
    assert cart.items("u1") == []


@pytest.mark.parametrize("text", ["añadir", "anadir 2"])
def test_add_usage(router, text):
    assert router.route("u1", text).reply.text == messages.ADD_USAGE


def test_add_unknown_product_names_the_phrase(router, cart):
    reply = router.route("u1", "añadir 2 zapatos").reply
    assert '"zapatos"' in reply.text
    assert cart.items("u1") == []


def test_remove_by_position(router, cart):
    cart.add("u1", CAKE, 1)
    assert router.route("u1", "quitar 5").reply.text == messages.REMOVE_NOT_FOUND
    assert router.route("u1", "quitar uno").reply.text == messages.REMOVE_INVALID_NUMBER
    assert router.route("u1", "quitar").reply.text == messages.REMOVE_USAGE
    assert cart.count("u1") == 1
    reply = router.route("u1", "eliminar 1").reply
    assert "Producto eliminado" in reply.text
    assert cart.items("u1") == []


def test_clear_cart_also_leaves_checkout(router, cart, sessions):
    cart.add("u1", CAKE, 1)
    sessions.update("u1", flow=FlowState.CHECKOUT)
    result = router.route("u1", "vaciar carrito")
    assert result.reply.text == messages.CART_CLEARED
    assert cart.items("u1") == []
    session = sessions.get("u1")
    assert session.flow == FlowState.NONE
    assert session.checkout_stage is None


def test_finalize_with_empty_cart(router):
    assert router.route("u1", "finalizar compra").reply.text == messages.EMPTY_CART_CHECKOUT


def test_finalize_with_items_starts_checkout(router, cart, sessions):
    cart.add("u1", CAKE, 1)
    result = router.route("u1", "Finalizar compra")
    assert result.command == "finalize"
    assert result.reply.text == messages.CUSTOMER_DATA_PROMPT
    assert sessions.get("u1").flow == FlowState.CHECKOUT


def test_help(router):
    assert router.route("u1", "Ayuda").reply.text == messages.HELP_MESSAGE


def test_list_products_shows_every_category(router, catalog):
    text = router.route("u1", "quiero ver productos").reply.text
    for name in catalog.category_names():
        assert name in text
    assert "Frasco de 500 ml: $8,00" in text
    assert "12 cm rojo: $19,00" in text


def test_browse_images_opens_category_menu(router, sessions):
    result = router.route("u1", "ver imágenes")
    assert result.command == "browse_images"
    assert "1. Miel de Abeja" in result.reply.text
    assert sessions.get("u1").flow == FlowState.CATEGORY_MENU


def test_search(router):
    text = router.route("u1", "buscar frasco").reply.text
    assert "Frasco de 250 ml" in text
    assert "Frasco de 1 litro" in text
    assert router.route("u1", "buscar").reply.text == messages.SEARCH_USAGE
    assert "No encontré productos" in router.route("u1", "buscar zapatos").reply.text


@pytest.mark.parametrize("text", ["añadir Cirio Pascual", "añadir 2 Cirio Pascual"])
def test_add_variant_only_product_lists_options(router, cart, sessions, text):
    reply = router.route("u1", text).reply
    assert "No encontré" not in reply.text
    assert "12 cm blanco" in reply.text
    assert "20 cm blanco" in reply.text
    assert cart.items("u1") == []
    assert sessions.get("u1").flow == FlowState.NONE


def test_add_specific_variant(router, cart):
    router.route("u1", "añadir 1 Cirio Pascual 12 cm rojo")
    items = cart.items("u1")
    assert [(item.name, item.price) for item in items] == [("Cirio Pascual - 12 cm rojo", Decimal("19.0"))]
