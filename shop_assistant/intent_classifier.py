from __future__ import annotations

import logging
import random
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .data_loader import load_json_document
from .utils import contains_any, normalize_text

logger = logging.getLogger("shop.intent")

FALLBACK_RESPONSES: Dict[str, List[str]] = {
    "default": ["Lo siento, estoy teniendo problemas técnicos."],
}


class Intent(str, Enum):
    """Coarse message topics; values double as canned-response table keys."""
    HELP = "ayuda"
    PURCHASE = "compra"
    GREETING = "saludos"
    FAREWELL = "despedidas"
    THANKS = "agradecimientos"
    PRODUCTS = "productos"
    DEFAULT = "default"


# Checked in order; the first bucket with a matching keyword wins.
KEYWORD_BUCKETS: Tuple[Tuple[Intent, Tuple[str, ...]], ...] = (
    (Intent.HELP, ("ayuda", "help", "como comprar", "como funciona", "no entiendo")),
    (Intent.PURCHASE, ("comprar", "pedir", "pedido", "precio", "cuanto cuesta", "cuanto vale")),
    (Intent.GREETING, ("hola", "buenos dias", "buenas", "saludos", "hey")),
    (Intent.FAREWELL, ("adios", "chao", "hasta luego", "bye", "nos vemos")),
    (Intent.THANKS, ("gracias", "te agradezco", "muchas gracias")),
    (Intent.PRODUCTS, ("producto", "catalogo", "que venden", "que tienen", "menu", "categorias")),
)


class IntentClassifier:
    def classify(self, text: str) -> Intent:
        """Purpose: Map a message to the first matching keyword bucket.
        Inputs/Outputs: Input is raw text; output is an Intent (DEFAULT when none match).
        Side Effects / State: None.
        Dependencies: Uses normalize_text and KEYWORD_BUCKETS priority order.
        Failure Modes: Keyword heuristic; substrings can over-match ("hey" in "heyday").
        If Removed: The fallback step cannot pick a canned reply topic.
        Testing Notes: "hola, ayuda" -> HELP because help outranks greeting.
        """
        normalized = normalize_text(text)
        for intent, keywords in KEYWORD_BUCKETS:
            if contains_any(normalized, keywords):
                return intent
        return Intent.DEFAULT


class ResponseCatalog:
    """Canned replies per intent loaded from responses.json."""

    def __init__(self, responses: Dict[str, List[str]], rng: Optional[random.Random] = None) -> None:
        self._responses = {key: list(values) for key, values in responses.items() if values}
        if "default" not in self._responses:
            self._responses["default"] = list(FALLBACK_RESPONSES["default"])
        self._rng = rng or random.Random()

    @classmethod
    def from_file(cls, path: Path, rng: Optional[random.Random] = None) -> "ResponseCatalog":
        """Purpose: Load canned responses from a JSON mapping of key -> list of strings.
        Inputs/Outputs: Input is the file path; output is a ResponseCatalog.
        Side Effects / State: Logs load success or failure.
        Dependencies: Uses load_json_document.
        Failure Modes: Missing or malformed files fall back to a single apology table.
        If Removed: Greetings and farewells get no reply text.
        Testing Notes: A missing path still returns a catalog whose default reply is non-empty.
        """
        try:
            data = load_json_document(path)
        except (OSError, ValueError) as exc:
            logger.error("responses=%s status=load_failed error=%s", path, exc)
            return cls(FALLBACK_RESPONSES, rng=rng)
        if not isinstance(data, dict):
            logger.error("responses=%s status=invalid_format", path)
            return cls(FALLBACK_RESPONSES, rng=rng)
        tables = {
            str(key): [str(item) for item in values if str(item).strip()]
            for key, values in data.items()
            if isinstance(values, list)
        }
        logger.info("responses=%s tables=%d", path.name, len(tables))
        return cls(tables, rng=rng)

    def random_reply(self, intent: object) -> str:
        key = intent.value if isinstance(intent, Intent) else str(intent)
        candidates = self._responses.get(key) or self._responses["default"]
        return self._rng.choice(candidates)
