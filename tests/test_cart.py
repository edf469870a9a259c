from decimal import Decimal

import pytest

from shop_assistant.cart import EMPTY_CART_MESSAGE, CartManager
from shop_assistant.product_resolver import ProductMatch

FRASCO = ProductMatch(name="Frasco de 500 ml", price=Decimal("8.00"), category="Miel de Abeja")
CAKE = ProductMatch(name="Cake de Chocolate", price=Decimal("12.50"), category="Cake")


def test_same_product_merges_into_one_line():
    cart = CartManager()
    cart.add("u1", FRASCO, 2)
    items = cart.add("u1", FRASCO, 3)
    assert len(items) == 1
    assert items[0].quantity == 5
    assert cart.count("u1") == 5


def test_same_name_in_other_category_is_a_new_line():
    cart = CartManager()
    cart.add("u1", FRASCO, 1)
    cart.add("u1", ProductMatch(name=FRASCO.name, price=FRASCO.price, category="Otra"), 1)
    assert len(cart.items("u1")) == 2


def test_remove_is_bounds_checked():
    cart = CartManager()
    cart.add("u1", FRASCO, 1)
    assert not cart.remove("u1", 1)
    assert len(cart.items("u1")) == 1
    assert cart.remove("u1", 0)
    assert cart.items("u1") == []
    assert not cart.remove("u1", -1)


def test_total_and_summary():
    cart = CartManager()
    cart.add("u1", FRASCO, 2)
    cart.add("u1", CAKE, 1)
    assert cart.total("u1") == Decimal("28.50")
    summary = cart.summary("u1")
    assert "1. Frasco de 500 ml (Miel de Abeja)" in summary
    assert "$8,00 x 2 = $16,00" in summary
    assert "Total: $28,50" in summary


def test_empty_cart_summary_and_clear():
    cart = CartManager()
    assert cart.summary("u1") == EMPTY_CART_MESSAGE
    cart.add("u1", CAKE, 1)
    cart.clear("u1")
    assert cart.items("u1") == []
    assert cart.total("u1") == Decimal("0")


def test_items_returns_copies():
    cart = CartManager()
    cart.add("u1", CAKE, 1)
    cart.items("u1")[0].quantity = 99
    assert cart.items("u1")[0].quantity == 1


def test_carts_are_per_user():
    cart = CartManager()
    cart.add("u1", CAKE, 1)
    assert cart.items("u2") == []


def test_non_positive_quantity_is_rejected():
    cart = CartManager()
    with pytest.raises(ValueError):
        cart.add("u1", CAKE, 0)
    assert cart.items("u1") == []
