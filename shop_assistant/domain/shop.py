"""店铺记录与店铺目录服务协议。

店铺数据由目录服务持久化，这里只定义：

- ShopRecord: 店铺结构化字段、可选的原始文本与向量。
- SimilarityResult: 相似度检索的单条结果（只在检索时短暂存在）。
- ShopDirectory: 目录服务的异步协议，具体实现见 infrastructure.directory。
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence


# 结构化字段（不含 name），任意一个非空即视为店铺有内容
CONTENT_FIELDS = ("hours", "services", "pricing", "parking", "payments", "notes")


@dataclass(frozen=True)
class ShopRecord:
    id: str
    name: str
    hours: str = ""
    services: str = ""
    pricing: str = ""
    parking: str = ""
    payments: str = ""
    notes: str = ""
    raw_text: Optional[str] = None
    embedding: Optional[List[float]] = None

    @property
    def has_content(self) -> bool:
        if self.raw_text:
            return True
        return any(getattr(self, name) for name in CONTENT_FIELDS)

    @property
    def is_chat_ready(self) -> bool:
        """同时具备内容与向量的店铺才能进入检索与生成流程。"""

        return bool(self.embedding) and self.has_content

    def synthesize_raw_text(self) -> str:
        return synthesize_raw_text(self)

    def context_text(self) -> str:
        """优先使用店主提供的原始文本，否则由结构化字段拼出。"""

        return self.raw_text or self.synthesize_raw_text()


@dataclass(frozen=True)
class SimilarityResult:
    shop_id: str
    score: float


def synthesize_raw_text(shop: ShopRecord) -> str:
    """按固定顺序拼接带标签的结构化字段，空字段保留标签。"""

    return "\n".join(
        [
            f"Shop: {shop.name}",
            f"Hours: {shop.hours}",
            f"Services: {shop.services}",
            f"Pricing: {shop.pricing}",
            f"Parking: {shop.parking}",
            f"Payments: {shop.payments}",
            f"Notes: {shop.notes}",
        ]
    )


def slugify_shop_id(name: str) -> str:
    """由店铺名生成 ID：小写、空白转为 "-"、去掉 [a-z0-9-] 以外的字符。"""

    slug = re.sub(r"\s+", "-", name.lower())
    return re.sub(r"[^a-z0-9-]", "", slug)


class ShopDirectory(Protocol):
    """店铺目录服务协议。

    所有方法都是协程；实现者负责持久化与向量检索，本项目不实现检索算法。
    """

    async def get_shop(self, shop_id: str) -> Optional[ShopRecord]:
        ...

    async def find_similar(
        self, vector: Sequence[float], top_n: int, threshold: float
    ) -> List[SimilarityResult]:
        """返回按相似度降序排列的结果，低于阈值的条目不出现。"""

        ...

    async def record_usage(self, shop_id: str, count: int) -> None:
        ...

    async def save_shop(self, shop: ShopRecord) -> None:
        """新建或覆盖店铺的结构化字段；raw_text 与向量由 store_embedding 写入。"""

        ...

    async def store_embedding(self, shop_id: str, raw_text: str, embedding: Sequence[float]) -> None:
        ...

    async def get_usage(self, shop_id: str) -> int:
        ...
