"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置。

所有组件都接受显式传入的 settings 对象（例如 ``OpenAIClient(settings)``），
模块级的 ``settings`` 只是默认值，测试时可以直接传入桩对象，无需修改进程环境。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("SHOP_ASSISTANT_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """配置设置（使用 Pydantic）。"""

    # ---- Provider 相关配置 ----
    default_provider: str = Field(default="openai", description="默认使用的 Provider 名称")
    chat_model: str = Field(
        default="shop-chat",
        description="生成回复使用的逻辑模型名，由 registry 映射为具体厂商模型",
    )
    embedding_model: str = Field(
        default="shop-embedding",
        description="向量化使用的逻辑模型名",
    )
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API 密钥")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI 兼容 API 的基础URL",
    )
    http_timeout: float = Field(default=30.0, ge=1.0, description="HTTP 超时时间（秒）")

    # ---- 对话与检索 ----
    history_window: int = Field(
        default=6,
        ge=0,
        le=50,
        description="发给生成服务的历史消息条数（不含 system 与本轮问题）",
    )
    similarity_top_n: int = Field(default=1, ge=1, description="相似度检索返回条数")
    similarity_threshold: float = Field(default=0.5, ge=0.0, le=1.0, description="相似度阈值")

    # ---- 店铺目录服务 ----
    directory_base_url: str = Field(
        default="http://localhost:8080/api",
        description="店铺目录服务的基础URL",
    )
    directory_api_key: Optional[str] = Field(default=None, description="店铺目录服务访问令牌")

    # ---- 日志 ----
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("openai_api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        if v and len(v) < 10:
            raise ValueError("API key seems too short")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = Settings()
