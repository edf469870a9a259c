from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Dict, Optional

from .product_resolver import ProductMatch
from .validators import CustomerData, mask_contact_value

logger = logging.getLogger("shop.session")


class FlowState(str, Enum):
    """Active multi-turn process for a user; values match the historical markers."""
    NONE = ""
    CATEGORY_MENU = "menu_categorias"
    AWAITING_QUANTITY = "solicitar_cantidad"
    PRODUCT_ADDED = "producto_agregado"
    CHECKOUT = "checkout"
    ORDER_COMPLETED = "pedido_completo"
    ORDER_CANCELLED = "pedido_cancelado"

    @property
    def is_idle(self) -> bool:
        """True when no multi-turn process is waiting for input."""
        return self in IDLE_FLOWS


IDLE_FLOWS = frozenset(
    {FlowState.NONE, FlowState.PRODUCT_ADDED, FlowState.ORDER_COMPLETED, FlowState.ORDER_CANCELLED}
)


class CheckoutStage(str, Enum):
    """Sub-stage inside checkout; a completed order is FlowState.ORDER_COMPLETED."""
    CUSTOMER_DATA = "datos_cliente"
    CONFIRMATION = "confirmacion"


@dataclass(frozen=True)
class Session:
    """Per-user conversation state; replaced as a whole value, merged field by field."""
    flow: FlowState = FlowState.NONE
    checkout_stage: Optional[CheckoutStage] = None
    selected_category: Optional[str] = None
    pending_product: Optional[ProductMatch] = None
    customer: Optional[CustomerData] = None
    last_topic: str = ""
    last_order_id: Optional[str] = None
    timestamp: float = 0.0

    def as_log_dict(self) -> Dict[str, object]:
        """Log-safe view with the customer phone masked."""
        return {
            "flow": self.flow.value,
            "checkout_stage": self.checkout_stage.value if self.checkout_stage else None,
            "selected_category": self.selected_category,
            "pending_product": self.pending_product.name if self.pending_product else None,
            "customer": (
                {"name": self.customer.name, "phone": mask_contact_value(self.customer.phone)}
                if self.customer
                else None
            ),
            "last_topic": self.last_topic,
            "last_order_id": self.last_order_id,
        }


SESSION_FIELDS = frozenset(f.name for f in fields(Session))


def normalize_session(session: Session) -> Session:
    """Purpose: Drop field combinations that are meaningless for the current flow.
    Inputs/Outputs: Input is a merged Session; output is a consistent Session.
    Side Effects / State: None.
    Dependencies: Uses FlowState/CheckoutStage semantics.
    Failure Modes: None; illegal combinations are cleared, never raised.
    If Removed: A stale checkout stage or pinned product could leak into later turns.
    Testing Notes: Moving from checkout to menu clears checkout_stage.
    """
    # Stage lives only inside checkout; the pinned product only while asking quantity.
    if session.flow != FlowState.CHECKOUT and session.checkout_stage is not None:
        session = replace(session, checkout_stage=None)
    if session.flow == FlowState.CHECKOUT and session.checkout_stage is None:
        session = replace(session, checkout_stage=CheckoutStage.CUSTOMER_DATA)
    if session.flow != FlowState.AWAITING_QUANTITY and session.pending_product is not None:
        session = replace(session, pending_product=None)
    return session


class SessionStore:
    """In-memory per-user session storage with per-key serialization locks."""

    def __init__(self, idle_ttl_sec: int = 0) -> None:
        """Purpose: Initialize empty session and lock maps.
        Inputs/Outputs: Input is an optional idle TTL in seconds (0 disables expiry).
        Side Effects / State: Creates in-memory caches and a guard lock.
        Dependencies: threading.Lock for per-user serialization.
        Failure Modes: None at init.
        If Removed: The orchestrator has no place to keep flow state between turns.
        Testing Notes: Two users get independent sessions and independent locks.
        """
        self._idle_ttl_sec = max(0, idle_ttl_sec)
        self._sessions: Dict[str, Session] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def lock(self, user_id: str) -> threading.Lock:
        """Return the lock serializing turns for ``user_id``; created on first use."""
        with self._guard:
            user_lock = self._locks.get(user_id)
            if user_lock is None:
                user_lock = threading.Lock()
                self._locks[user_id] = user_lock
            return user_lock

    def get(self, user_id: str) -> Session:
        """Purpose: Fetch the session for a user, applying the optional idle TTL.
        Inputs/Outputs: Input is user_id; output is the Session (default when absent).
        Side Effects / State: Expired sessions are dropped from the cache.
        Dependencies: Uses time.time and _idle_ttl_sec.
        Failure Modes: Missing users return a fresh default Session.
        If Removed: Each turn would start from an empty state.
        Testing Notes: With ttl=1 and an old timestamp, get() returns a default Session.
        """
        with self._guard:
            session = self._sessions.get(user_id)
            if session is None:
                return Session()
            if self._is_expired(session):
                logger.info("user=%s status=session_expired flow=%s", user_id, session.flow.value)
                del self._sessions[user_id]
                return Session()
            return session

    def update(self, user_id: str, **changes: object) -> Session:
        """Purpose: Merge named fields into the user's session, last write wins.
        Inputs/Outputs: Inputs are user_id and Session field keyword arguments; returns
            the merged, normalized Session.
        Side Effects / State: Replaces the cached value; refreshes timestamp.
        Dependencies: Uses dataclasses.replace and normalize_session.
        Failure Modes: Unknown field names raise TypeError (programming error).
        If Removed: Flows cannot advance between turns.
        Testing Notes: Updating flow keeps selected_category untouched.
        """
        unknown = set(changes) - SESSION_FIELDS
        if unknown:
            raise TypeError(f"Unknown session fields: {sorted(unknown)}")
        current = self.get(user_id)
        values = {"timestamp": time.time(), **changes}
        merged = normalize_session(replace(current, **values))
        with self._guard:
            self._sessions[user_id] = merged
        logger.debug("user=%s session=%s", user_id, merged.as_log_dict())
        return merged

    def reset(self, user_id: str) -> None:
        with self._guard:
            self._sessions.pop(user_id, None)

    def _is_expired(self, session: Session) -> bool:
        if not self._idle_ttl_sec or not session.timestamp:
            return False
        return (time.time() - session.timestamp) > self._idle_ttl_sec
