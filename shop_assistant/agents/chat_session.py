"""店铺对话会话（状态机）。

状态只有 idle / processing 两种：

- idle -> processing: 输入去空白后非空、店铺已加载、AI 服务可用、
  且没有进行中的请求。进行中再次发送直接拒绝（不排队）。
- processing -> idle: 无论成功失败都会在 finally 中回到 idle。
  成功时追加助手回复；失败时追加用户可读的错误文案并设置 error 横幅。

会话只存在于内存中：关闭或切换店铺后，迟到的响应直接丢弃，不再修改消息列表。
"""

import logging
import time
from typing import Any, Dict, List, Literal, Optional, Tuple
from uuid import uuid4

from shop_assistant.agents.context_resolver import ContextResolver
from shop_assistant.agents.usage_recorder import UsageRecorder
from shop_assistant.config.settings import settings
from shop_assistant.domain.exceptions import AssistantError
from shop_assistant.domain.models import ChatMessage
from shop_assistant.domain.shop import ShopDirectory, ShopRecord
from shop_assistant.flows.graph import build_reply_graph
from shop_assistant.infrastructure.logging.logger import log_event
from shop_assistant.services.ai_service import AIService


SessionState = Literal["idle", "processing"]

GREETING_TEMPLATE = "Hello! I'm the AI assistant for {name}. How can I help you today?"

CONFIGURATION_TEXT = "The AI service is not properly configured. Please contact the shop owner."
NOT_READY_TEXT = "This shop's information isn't ready yet. Please try again later."
API_FALLBACK_TEXT = "The AI service couldn't complete your request. Please try again."
NETWORK_TEXT = "The AI service is temporarily unavailable. Please try again soon."
GENERIC_TEXT = "I'm sorry, I'm having trouble processing your request right now. Please try again."


def describe_failure(exc: BaseException) -> str:
    """把异常映射为展示给顾客的文案。"""

    if isinstance(exc, AssistantError):
        if exc.kind == "configuration":
            return CONFIGURATION_TEXT
        if exc.kind == "not_ready":
            return NOT_READY_TEXT
        if exc.kind == "api":
            return exc.remote_message or API_FALLBACK_TEXT
        if exc.kind == "network":
            return NETWORK_TEXT
    return GENERIC_TEXT


class ChatSession:
    """单个对话页面持有的会话。

    对 UI 暴露：send_message()、只读的 messages / busy / error，
    以及输入框草稿 draft（进入 processing 时清空）。
    """

    def __init__(
        self,
        ai_service: Optional[AIService],
        directory: ShopDirectory,
        shop: Optional[ShopRecord] = None,
        resolver: Optional[ContextResolver] = None,
        usage_recorder: Optional[UsageRecorder] = None,
        config=None,
        session_id: Optional[str] = None,
    ):
        cfg = config or settings
        self.session_id = session_id or f"s-{uuid4().hex}"
        self.draft = ""
        if ai_service is None and resolver is not None:
            ai_service = resolver.ai_service
        self._ai = ai_service
        self._graph = None
        if ai_service is not None:
            resolver = resolver or ContextResolver(
                directory,
                ai_service,
                top_n=getattr(cfg, "similarity_top_n", 1),
                threshold=getattr(cfg, "similarity_threshold", 0.5),
            )
            self._graph = build_reply_graph(resolver, ai_service)
        self._usage = usage_recorder or UsageRecorder(directory)
        self._shop: Optional[ShopRecord] = None
        self._messages: List[ChatMessage] = []
        self._busy = False
        self._error: Optional[str] = None
        self._last_failure: Optional[BaseException] = None
        self._epoch = 0
        self._closed = False
        if shop is not None:
            self.load_shop(shop)

    @property
    def messages(self) -> Tuple[ChatMessage, ...]:
        return tuple(self._messages)

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def state(self) -> SessionState:
        return "processing" if self._busy else "idle"

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def last_failure(self) -> Optional[BaseException]:
        return self._last_failure

    @property
    def shop(self) -> Optional[ShopRecord]:
        return self._shop

    @property
    def closed(self) -> bool:
        return self._closed

    def load_shop(self, shop: ShopRecord) -> None:
        """加载店铺记录。

        换了一家店铺时清空历史，重新写入一条问候语；同一家店铺的记录刷新
        （例如重新生成了向量）只替换记录本身，保留对话历史。
        """

        if self._shop is not None and self._shop.id == shop.id and self._messages:
            self._shop = shop
            return
        self._shop = shop
        self._epoch += 1
        self._messages = [ChatMessage(role="assistant", content=GREETING_TEMPLATE.format(name=shop.name))]
        self._error = None
        self._last_failure = None
        log_event(logging.INFO, "Session seeded", self._log_ctx(), shop_id=shop.id)

    def close(self) -> None:
        """页面卸载时调用；进行中的请求会跑完，但结果不再写入会话。"""

        self._closed = True
        log_event(logging.INFO, "Session closed", self._log_ctx(), in_flight=self._busy)

    async def flush_usage(self) -> None:
        await self._usage.flush()

    async def send_message(self, text: Optional[str] = None) -> Optional[ChatMessage]:
        """发送一条用户消息，返回追加的助手消息；被拒绝或结果被丢弃时返回 None。

        text 为空时使用 draft。所有失败都在这里转换为助手消息，不会向外抛出。
        """

        question = (self.draft if text is None else text or "").strip()
        shop = self._shop
        if not question or shop is None or self._graph is None or self._busy or self._closed:
            log_event(
                logging.DEBUG,
                "Send rejected",
                self._log_ctx(),
                empty=not question,
                busy=self._busy,
                closed=self._closed,
            )
            return None

        epoch = self._epoch
        history = list(self._messages)
        self._messages.append(ChatMessage(role="user", content=question))
        self.draft = ""
        self._error = None
        self._last_failure = None
        self._busy = True

        log_ctx = self._log_ctx()
        log_ctx["shop_id"] = shop.id
        log_ctx["trace_id"] = f"tr-{uuid4().hex}"
        start_time = time.time()
        try:
            result: Dict[str, Any] = await self._graph.ainvoke(
                {"question": question, "shop": shop, "history": history, "log_ctx": log_ctx}
            )
        except Exception as exc:  # noqa: BLE001 - 会话边界统一兜底
            return self._fail(exc, epoch, log_ctx, time.time() - start_time)
        finally:
            self._busy = False

        if not self._is_current(epoch):
            log_event(logging.INFO, "Dropped late reply", log_ctx)
            return None
        reply = ChatMessage(role="assistant", content=result.get("reply") or "")
        self._messages.append(reply)
        log_event(
            logging.INFO,
            "Completed chat turn",
            log_ctx,
            elapsed_seconds=round(time.time() - start_time, 2),
            message_count=len(self._messages),
        )
        self._usage.schedule(shop.id, 1, log_ctx)
        return reply

    def _fail(
        self,
        exc: BaseException,
        epoch: int,
        log_ctx: Dict[str, Any],
        elapsed: float,
    ) -> Optional[ChatMessage]:
        text = describe_failure(exc)
        kind = exc.kind if isinstance(exc, AssistantError) else "unclassified"
        log_event(
            logging.ERROR if kind == "unclassified" else logging.WARNING,
            "Chat turn failed",
            log_ctx,
            kind=kind,
            code=getattr(exc, "code", None),
            error=str(exc),
            error_type=type(exc).__name__,
            elapsed_seconds=round(elapsed, 2),
        )
        if not self._is_current(epoch):
            return None
        reply = ChatMessage(role="assistant", content=text, meta={"error": kind})
        self._messages.append(reply)
        self._error = text
        self._last_failure = exc
        return reply

    def _is_current(self, epoch: int) -> bool:
        return not self._closed and epoch == self._epoch

    def _log_ctx(self) -> Dict[str, Any]:
        return {"session_id": self.session_id}
