"""Provider 与模型配置。

本模块将“逻辑模型名”与“具体厂商模型名”解耦：

- 逻辑名（logical_name）：在代码里使用的统一名称，例如 "shop-chat"。
- provider_model：厂商实际提供的模型 ID，例如 "gpt-4o-mini"。

上层只关心逻辑名，具体用哪个底层模型由这里集中配置，便于后续升级或切换。"""

from dataclasses import dataclass
from typing import Dict, Mapping, Optional


@dataclass
class ModelConfig:
    """单个逻辑模型的配置。

    向量模型不使用 max_tokens / temperature，保持为 None。
    """

    logical_name: str
    provider_model: str
    max_tokens: Optional[int] = None
    default_temperature: Optional[float] = None


@dataclass
class ProviderConfig:
    """某个 Provider 的整体配置。"""

    name: str
    base_url: str
    models: Dict[str, ModelConfig]


OPENAI_CONFIG = ProviderConfig(
    name="openai",
    base_url="https://api.openai.com/v1",
    models={
        "shop-chat": ModelConfig(
            logical_name="shop-chat",
            provider_model="gpt-4o-mini",
            max_tokens=500,
            default_temperature=0.7,
        ),
        "shop-embedding": ModelConfig(
            logical_name="shop-embedding",
            provider_model="text-embedding-3-small",
        ),
    },
)


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = {
    "openai": OPENAI_CONFIG,
}


def get_provider_config(name: str) -> ProviderConfig:
    """根据名称获取 ProviderConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")


def resolve_model(provider: ProviderConfig, logical_name: str) -> ModelConfig:
    """逻辑名未登记时按厂商模型名直传，方便在配置里直接写 "gpt-4o"。"""

    cfg = provider.models.get(logical_name)
    if cfg is not None:
        return cfg
    return ModelConfig(logical_name=logical_name, provider_model=logical_name)
