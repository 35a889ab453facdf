"""店铺索引：保存店铺记录，生成原始文本与向量并写回目录服务。

店铺创建或编辑后调用一次，店铺由此变为 chat-ready。
失败直接抛给调用方（管理端自行提示），这里不做用户文案映射。
"""

import dataclasses
import logging
from typing import Optional

from shop_assistant.domain.shop import ShopDirectory, ShopRecord, slugify_shop_id
from shop_assistant.infrastructure.logging.logger import log_event
from shop_assistant.services.ai_service import AIService


def new_shop(name: str, **fields: str) -> ShopRecord:
    """用店铺名生成 ID 并构造 ShopRecord；名称为空时抛出 ValueError。"""

    name = name.strip()
    if not name:
        raise ValueError("Shop name is required")
    shop_id = slugify_shop_id(name)
    if not shop_id:
        raise ValueError(f"Shop name {name!r} produces an empty identifier")
    return ShopRecord(id=shop_id, name=name, **fields)


class ShopIndexer:
    def __init__(self, directory: ShopDirectory, ai_service: AIService):
        self._directory = directory
        self._ai = ai_service

    async def index(self, shop: ShopRecord, raw_text: Optional[str] = None) -> ShopRecord:
        """保存店铺记录，再向量化店铺文本并写回，返回带 raw_text/embedding 的新记录。

        raw_text 为空时由结构化字段合成（与对话时的兜底上下文一致）。
        """

        await self._directory.save_shop(shop)
        text = raw_text or shop.synthesize_raw_text()
        vector = await self._ai.embed(text)
        await self._directory.store_embedding(shop.id, text, vector)
        log_event(
            logging.INFO,
            "Indexed shop",
            {"shop_id": shop.id},
            chars=len(text),
            dimensions=len(vector),
        )
        return dataclasses.replace(shop, raw_text=text, embedding=vector)
