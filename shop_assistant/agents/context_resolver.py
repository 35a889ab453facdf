"""上下文解析：决定本轮回答使用哪段店铺文本作为依据。

对话页面已经固定在某一家店铺上，相似度检索只用来确认“当前店铺的内容
确实是问题的最近邻”，属于诊断信号，不做路由：检索结果为空、
或者最近邻是另一家店铺时，仍然回退到当前店铺自己的文本。
"""

import logging
from typing import Any, Dict, Optional

from shop_assistant.config.settings import settings
from shop_assistant.domain.exceptions import AssistantError
from shop_assistant.domain.shop import ShopDirectory, ShopRecord
from shop_assistant.infrastructure.logging.logger import log_event
from shop_assistant.services.ai_service import AIService


class ContextResolver:
    def __init__(
        self,
        directory: ShopDirectory,
        ai_service: AIService,
        top_n: Optional[int] = None,
        threshold: Optional[float] = None,
    ):
        self._directory = directory
        self._ai = ai_service
        self._top_n = top_n if top_n is not None else settings.similarity_top_n
        self._threshold = threshold if threshold is not None else settings.similarity_threshold

    @property
    def ai_service(self) -> AIService:
        return self._ai

    async def resolve(
        self,
        question: str,
        shop: ShopRecord,
        log_ctx: Optional[Dict[str, Any]] = None,
    ) -> str:
        """返回本轮的 grounding context。

        店铺没有向量或没有任何内容时抛出 AssistantError(kind="not_ready")，
        此时不会发起任何付费调用。
        """

        ctx = dict(log_ctx or {})
        ctx.setdefault("shop_id", shop.id)
        if not shop.is_chat_ready:
            log_event(
                logging.WARNING,
                "Shop not ready for chat",
                ctx,
                has_embedding=bool(shop.embedding),
                has_content=shop.has_content,
            )
            raise AssistantError.not_ready(shop.id)

        vector = await self._ai.embed(question)
        matches = await self._directory.find_similar(vector, self._top_n, self._threshold)

        if matches and matches[0].shop_id == shop.id:
            log_event(logging.INFO, "Similarity matched", ctx, score=matches[0].score)
        else:
            top = matches[0] if matches else None
            log_event(
                logging.INFO,
                "Similarity fallback",
                ctx,
                top_shop_id=top.shop_id if top else None,
                top_score=top.score if top else None,
            )
        return shop.context_text()
