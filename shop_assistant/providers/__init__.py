"""AI Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护 Provider 与模型配置 (registry)。
- 提供各厂商的具体实现 (如 openai_client)。
"""

from typing import Optional

from shop_assistant.config.settings import settings
from shop_assistant.providers.base import ProviderClient
from shop_assistant.providers.openai_client import OpenAIClient
from shop_assistant.providers.registry import get_provider_config


def create_provider(name: Optional[str] = None, config=None) -> ProviderClient:
    """根据名称创建 Provider 实例，默认取配置中的 provider。

    config 为空时使用模块级 settings；未登记的名称抛出 KeyError。
    """

    cfg = config or settings
    provider_name = (name or getattr(cfg, "default_provider", "openai")).lower()
    get_provider_config(provider_name)
    return OpenAIClient(cfg)
