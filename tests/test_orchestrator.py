import re
import threading

from shop_assistant import messages
from shop_assistant.session_store import CheckoutStage, FlowState

VALID_DATA = "María Pérez\nCalle 1\n0991234567"


def test_purchase_quantity_checkout_confirm(orchestrator, cart, sessions):
    turn = orchestrator.handle_turn("u1", "Quiero comprar Frasco de 500 ml")
    assert turn.route == "purchase_intent"
    assert sessions.get("u1").flow == FlowState.AWAITING_QUANTITY

    assert orchestrator.handle_message("u1", "dos").text == messages.ASK_QUANTITY_AGAIN
    assert sessions.get("u1").flow == FlowState.AWAITING_QUANTITY

    turn = orchestrator.handle_turn("u1", "3")
    assert turn.route == "pending_quantity"
    assert "x3" in turn.reply.text
    assert cart.count("u1") == 3
    session = sessions.get("u1")
    assert session.flow == FlowState.PRODUCT_ADDED
    assert session.pending_product is None

    assert orchestrator.handle_message("u1", "finalizar compra").text == messages.CUSTOMER_DATA_PROMPT
    assert orchestrator.handle_message("u1", "Jo\n123").text == messages.INVALID_CUSTOMER_DATA
    assert sessions.get("u1").checkout_stage == CheckoutStage.CUSTOMER_DATA
    assert cart.count("u1") == 3

    summary = orchestrator.handle_message("u1", VALID_DATA)
    assert "Total: $24,00" in summary.text
    assert sessions.get("u1").checkout_stage == CheckoutStage.CONFIRMATION

    reply = orchestrator.handle_message("u1", "si")
    assert re.search(r"MON-\d{6}-\d{4}", reply.text)
    assert reply.document_ref is not None
    assert cart.items("u1") == []
    assert sessions.get("u1").flow == FlowState.ORDER_COMPLETED


def test_declining_the_order_cancels(orchestrator, cart, sessions):
    orchestrator.handle_message("u1", "añadir 1 Cake de Chocolate")
    orchestrator.handle_message("u1", "finalizar compra")
    orchestrator.handle_message("u1", VALID_DATA)
    reply = orchestrator.handle_message("u1", "no")
    assert reply.text == messages.ORDER_CANCELLED
    assert cart.items("u1") == []
    assert sessions.get("u1").flow == FlowState.ORDER_CANCELLED


def test_clear_cart_escapes_checkout(orchestrator, cart, sessions):
    orchestrator.handle_message("u1", "añadir 1 Cake de Chocolate")
    orchestrator.handle_message("u1", "finalizar compra")
    reply = orchestrator.handle_message("u1", "cancelar compra")
    assert reply.text == messages.CART_CLEARED
    assert sessions.get("u1").flow == FlowState.NONE


def test_category_menu_by_number_then_product(orchestrator, sessions, images_dir):
    (images_dir / "cake-chocolate.jpg").write_bytes(b"jpg")
    orchestrator.handle_message("u1", "ver imágenes")

    reply = orchestrator.handle_message("u1", "2")
    assert "Productos de Cake" in reply.text
    assert reply.image_ref == str((images_dir / "cake-chocolate.jpg").resolve())
    session = sessions.get("u1")
    assert session.flow == FlowState.CATEGORY_MENU
    assert session.selected_category == "Cake"

    card = orchestrator.handle_message("u1", "naranja")
    assert "Cake de Naranja" in card.text
    assert card.image_ref is None

    assert orchestrator.handle_message("u1", "99").text == messages.CATEGORY_NOT_FOUND


def test_implicit_category_entry_when_idle(orchestrator, sessions):
    turn = orchestrator.handle_turn("u1", "3")
    assert turn.route == "implicit_category"
    assert "Productos de Alfajores" in turn.reply.text
    assert sessions.get("u1").flow == FlowState.CATEGORY_MENU

    turn = orchestrator.handle_turn("u2", "me interesa el propóleo")
    assert "Productos de Propóleo" in turn.reply.text


def test_fallback_greeting_sets_topic_only(orchestrator, sessions):
    turn = orchestrator.handle_turn("u1", "hola")
    assert turn.route == "fallback"
    assert turn.reply.text
    session = sessions.get("u1")
    assert session.last_topic == "saludos"
    assert session.flow == FlowState.NONE


def test_products_topic_opens_category_menu(orchestrator, sessions):
    reply = orchestrator.handle_message("u1", "¿qué venden?")
    assert "1. Miel de Abeja" in reply.text
    assert sessions.get("u1").flow == FlowState.CATEGORY_MENU
    assert "Productos de Miel de Abeja" in orchestrator.handle_message("u1", "1").text


def test_help_topic_from_fallback(orchestrator):
    turn = orchestrator.handle_turn("u1", "no entiendo nada")
    assert turn.route == "fallback"
    assert turn.reply.text == messages.HELP_MESSAGE


def test_purchase_miss_explains(orchestrator, sessions):
    reply = orchestrator.handle_message("u1", "quiero comprar miel")
    assert "Miel de Abeja" in reply.text
    assert sessions.get("u1").flow == FlowState.NONE


def test_lost_pinned_product_releases_the_flow(orchestrator, sessions):
    sessions.update("u1", flow=FlowState.AWAITING_QUANTITY)
    turn = orchestrator.handle_turn("u1", "hola")
    assert turn.route == "fallback"
    assert sessions.get("u1").flow == FlowState.NONE


def test_unexpected_errors_become_a_generic_apology(orchestrator, router, monkeypatch):
    def boom(user_id, text):
        raise RuntimeError("boom")

    monkeypatch.setattr(router, "route", boom)
    turn = orchestrator.handle_turn("u1", "carrito")
    assert turn.route == "error"
    assert turn.reply.text == messages.GENERIC_APOLOGY


def test_turns_for_one_user_are_serialized(orchestrator, cart):
    threads = [
        threading.Thread(target=orchestrator.handle_message, args=("u1", "añadir 1 Frasco de 500 ml"))
        for _ in range(20)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    items = cart.items("u1")
    assert len(items) == 1
    assert items[0].quantity == 20


def test_numbers_in_menu_always_select_categories(orchestrator, sessions):
    orchestrator.handle_message("u1", "ver imágenes")
    assert "Productos de Alfajores" in orchestrator.handle_message("u1", "3").text

    reply = orchestrator.handle_message("u1", "2")
    assert "Productos de Cake" in reply.text
    assert "Caja de 12 alfajores" not in reply.text
    assert sessions.get("u1").selected_category == "Cake"


def test_small_talk_in_menu_falls_through_to_classifier(orchestrator, sessions):
    orchestrator.handle_message("u1", "ver imágenes")
    orchestrator.handle_message("u1", "2")

    turn = orchestrator.handle_turn("u1", "hola")
    assert turn.route == "fallback"
    assert turn.reply.text != messages.CATEGORY_NOT_FOUND
    session = sessions.get("u1")
    assert session.flow == FlowState.CATEGORY_MENU
    assert session.last_topic == "saludos"

    assert orchestrator.handle_message("u1", "zapatos").text == messages.CATEGORY_NOT_FOUND


def test_add_command_lists_variants_of_variant_only_product(orchestrator):
    reply = orchestrator.handle_message("u1", "añadir Cirio Pascual")
    assert "Cirio Pascual* está disponible en varias opciones" in reply.text
