"""AI 服务适配层。

把 Provider 客户端包装成会话层需要的两个调用：

- embed(text): 文本向量化。
- generate_reply(question, grounding_context, history): 带店铺上下文的回复生成。

发给生成服务的消息序列固定为：
1 条 system 消息 + 历史中最近 history_window 条（默认 6 条，旧的在前）+ 本轮问题。
更早的历史直接丢弃，以此约束 token 成本与延迟。
"""

import logging
import time
from typing import Any, Dict, List, Optional, Sequence

from shop_assistant.config.settings import settings
from shop_assistant.domain.models import ChatMessage, ChatRequest
from shop_assistant.infrastructure.logging.logger import log_event
from shop_assistant.prompts import load_system_prompt
from shop_assistant.providers.base import ProviderClient


class AIService:
    def __init__(self, provider_client: ProviderClient, config=None):
        self._provider_client = provider_client
        self._config = config or settings

    @property
    def provider_name(self) -> str:
        return getattr(self._provider_client, "name", "unknown")

    @property
    def history_window(self) -> int:
        return int(getattr(self._config, "history_window", 6))

    async def embed(self, text: str) -> List[float]:
        model = getattr(self._config, "embedding_model", "shop-embedding")
        start = time.monotonic()
        vector = await self._provider_client.embed(text, model)
        log_event(
            logging.INFO,
            "Generated embedding",
            {"provider": self.provider_name},
            model=model,
            dimensions=len(vector),
            elapsed_ms=int((time.monotonic() - start) * 1000),
        )
        return vector

    def build_messages(
        self,
        question: str,
        grounding_context: str,
        history: Sequence[ChatMessage],
    ) -> List[ChatMessage]:
        """构造发给生成服务的完整消息序列。"""

        window = self.history_window
        recent = list(history)[-window:] if window > 0 else []
        messages = [ChatMessage(role="system", content=load_system_prompt(grounding_context))]
        messages.extend(ChatMessage(role=m.role, content=m.content) for m in recent)
        messages.append(ChatMessage(role="user", content=question))
        return messages

    async def generate_reply(
        self,
        question: str,
        grounding_context: str,
        history: Sequence[ChatMessage],
        log_ctx: Optional[Dict[str, Any]] = None,
    ) -> str:
        messages = self.build_messages(question, grounding_context, history)
        req = ChatRequest(
            provider=self.provider_name,
            model=getattr(self._config, "chat_model", "shop-chat"),
            messages=messages,
        )
        ctx = dict(log_ctx or {})
        log_event(
            logging.INFO,
            "Calling provider",
            ctx,
            provider=req.provider,
            model=req.model,
            message_count=len(messages),
            dropped_history=max(0, len(history) - (len(messages) - 2)),
            grounded=bool(grounding_context),
        )
        result = await self._provider_client.chat(req)
        if result.usage:
            log_event(
                logging.INFO,
                "Token usage",
                ctx,
                prompt_tokens=result.usage.prompt_tokens,
                completion_tokens=result.usage.completion_tokens,
                total_tokens=result.usage.total_tokens,
            )
        return result.choices[0].message.content
