from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    """Inbound chat message for one user."""
    user_id: str = Field(min_length=1)
    message: str


class ChatResponse(BaseModel):
    """Reply payload: text plus optional image and document references."""
    text: str
    image_ref: Optional[str] = None
    document_ref: Optional[str] = None
    route: str = ""


class CartLine(BaseModel):
    name: str
    category: str
    price: str
    quantity: int
    subtotal: str


class CartSnapshot(BaseModel):
    """Operator view of a user's cart with formatted money values."""
    user_id: str
    items: List[CartLine]
    units: int
    total: str


class SessionView(BaseModel):
    """Operator view of a user's session; contact data is masked."""
    user_id: str
    flow: str
    checkout_stage: Optional[str] = None
    selected_category: Optional[str] = None
    pending_product: Optional[str] = None
    customer: Optional[Dict[str, str]] = None
    last_topic: str = ""
    last_order_id: Optional[str] = None
