"""使用量统计（fire-and-forget）。

回复展示之后才调度，调度本身不等待结果；目录服务的任何失败都只写日志，
不会影响会话消息、错误横幅或忙碌状态。
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Set

from shop_assistant.domain.shop import ShopDirectory
from shop_assistant.infrastructure.logging.logger import log_event


class UsageRecorder:
    def __init__(self, directory: ShopDirectory):
        self._directory = directory
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def schedule(self, shop_id: str, count: int = 1, log_ctx: Optional[Dict[str, Any]] = None) -> asyncio.Task:
        """在当前事件循环中后台记录一次使用量，立即返回。"""

        task = asyncio.get_running_loop().create_task(self._record(shop_id, count, dict(log_ctx or {})))
        # 事件循环只持有弱引用，这里保留强引用直到任务结束
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def flush(self) -> None:
        """等待所有未完成的记录任务（关闭时或测试中使用）。"""

        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def _record(self, shop_id: str, count: int, log_ctx: Dict[str, Any]) -> None:
        try:
            await self._directory.record_usage(shop_id, count)
        except Exception as exc:  # noqa: BLE001 - 统计失败不能影响对话
            log_event(
                logging.WARNING,
                "Failed to record usage",
                log_ctx,
                shop_id=shop_id,
                count=count,
                error=str(exc),
                error_type=type(exc).__name__,
            )
