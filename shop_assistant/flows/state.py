"""State definition for the reply graph."""

from __future__ import annotations

from typing import Any, Dict, List, TypedDict

from shop_assistant.domain.models import ChatMessage
from shop_assistant.domain.shop import ShopRecord


class ReplyState(TypedDict, total=False):
    """State shared across reply graph nodes."""

    question: str
    shop: ShopRecord
    history: List[ChatMessage]
    log_ctx: Dict[str, Any]
    context: str
    reply: str
