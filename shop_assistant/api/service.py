"""对外 API 服务模块。

提供简化的函数接口供上层应用（Web 页面、演示脚本）调用。
"""

from typing import Optional

from shop_assistant.agents.chat_session import ChatSession
from shop_assistant.config.settings import settings
from shop_assistant.domain.exceptions import BusinessError
from shop_assistant.domain.shop import ShopDirectory
from shop_assistant.infrastructure.directory.http_directory import HttpShopDirectory
from shop_assistant.infrastructure.logging.logger import logger
from shop_assistant.providers import create_provider
from shop_assistant.services.ai_service import AIService
from shop_assistant.services.shop_indexer import ShopIndexer, new_shop


_directory: Optional[ShopDirectory] = None
_ai_service: Optional[AIService] = None


def get_default_directory() -> ShopDirectory:
    """获取默认的目录服务客户端（单例）。"""
    global _directory
    if _directory is None:
        _directory = HttpShopDirectory(settings)
    return _directory


def get_default_ai_service() -> AIService:
    """获取默认的 AI 服务（单例）。"""
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService(create_provider(), settings)
    return _ai_service


async def open_chat_session(
    shop_id: str,
    directory: Optional[ShopDirectory] = None,
    ai_service: Optional[AIService] = None,
) -> ChatSession:
    """打开某家店铺的对话会话。

    Args:
        shop_id: 店铺ID（由店铺名生成的 slug）
        directory: 目录服务（可选，默认使用 HttpShopDirectory）
        ai_service: AI 服务（可选，默认按配置创建）

    Returns:
        已写入问候语的 ChatSession

    Raises:
        BusinessError: 店铺不存在（SHOP_NOT_FOUND）或目录服务不可用
    """
    directory = directory or get_default_directory()
    ai_service = ai_service or get_default_ai_service()
    try:
        shop = await directory.get_shop(shop_id)
    except BusinessError as e:
        logger.error(f"Failed to load shop: {e}", extra={"extra": {
            "shop_id": shop_id,
            "code": e.code,
        }})
        raise
    if shop is None:
        raise BusinessError(code="SHOP_NOT_FOUND", message=f"Shop {shop_id!r} not found", http_status=404)
    return ChatSession(ai_service=ai_service, directory=directory, shop=shop)


async def index_shop(
    name: str,
    directory: Optional[ShopDirectory] = None,
    ai_service: Optional[AIService] = None,
    raw_text: Optional[str] = None,
    **fields: str,
):
    """由店铺名与结构化字段生成记录，保存后写入原始文本与向量。

    Args:
        name: 店铺名（生成 ID 前会去掉首尾空白）
        raw_text: 店主提供的原始文本（可选，为空时由结构化字段合成）

    Returns:
        带 raw_text 与 embedding 的 ShopRecord
    """
    indexer = ShopIndexer(directory or get_default_directory(), ai_service or get_default_ai_service())
    return await indexer.index(new_shop(name, **fields), raw_text=raw_text)
