from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from shop_assistant.app import create_app
from shop_assistant.config import Settings, load_settings

DATA_DIR = Path(__file__).resolve().parents[1] / "shop_assistant" / "data"


@pytest.fixture
def client(tmp_path):
    settings = Settings(
        store_name="Monasterio de la Trapa",
        catalog_path=DATA_DIR / "products.json",
        responses_path=DATA_DIR / "responses.json",
        images_dir=tmp_path / "images",
        invoices_dir=tmp_path / "invoices",
        session_idle_ttl_sec=0,
    )
    return TestClient(create_app(settings))


def test_chat_adds_to_cart_and_exposes_snapshot(client):
    response = client.post("/api/chat", json={"user_id": "593991234567", "message": "añadir 2 Frasco de 500 ml"})
    assert response.status_code == 200
    body = response.json()
    assert body["route"] == "commands"
    assert "Frasco de 500 ml x2" in body["text"]
    assert body["image_ref"] is None

    cart = client.get("/api/cart/593991234567").json()
    assert cart["units"] == 2
    assert cart["total"] == "$16,00"
    assert cart["items"][0]["subtotal"] == "$16,00"


def test_session_view_masks_phone(client):
    client.post("/api/chat", json={"user_id": "u1", "message": "añadir 1 Cake de Chocolate"})
    client.post("/api/chat", json={"user_id": "u1", "message": "finalizar compra"})
    client.post("/api/chat", json={"user_id": "u1", "message": "María Pérez\nCalle 1\n0991234567"})
    view = client.get("/api/sessions/u1").json()
    assert view["flow"] == "checkout"
    assert view["checkout_stage"] == "confirmacion"
    assert view["customer"] == {"name": "María Pérez", "phone": "***567"}


def test_empty_user_id_is_rejected(client):
    response = client.post("/api/chat", json={"user_id": "", "message": "hola"})
    assert response.status_code == 422


def test_settings_read_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("CATALOG_PATH", str(tmp_path / "catalogo.json"))
    monkeypatch.setenv("SESSION_IDLE_TTL_SEC", "900")
    monkeypatch.setenv("STORE_NAME", "Tienda")
    settings = load_settings()
    assert settings.catalog_path == tmp_path / "catalogo.json"
    assert settings.session_idle_ttl_sec == 900
    assert settings.store_name == "Tienda"


def test_invalid_ttl_fails_fast(monkeypatch):
    monkeypatch.setenv("SESSION_IDLE_TTL_SEC", "nunca")
    with pytest.raises(ValueError):
        load_settings()
