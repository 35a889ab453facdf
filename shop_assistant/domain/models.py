"""统一的对话与结果数据模型。

本模块定义了会话层与 Provider 适配层之间共享的标准数据结构：

- ChatMessage: 一条对话消息（system/user/assistant）。
- ChatRequest: 发给底层生成服务的完整请求。
- ChatResult: 从 Provider 解析后的统一响应结果。

Provider 适配器（如 OpenAIClient）只依赖这些模型，
并负责在各自的 API JSON 和这些模型之间做转换。
"""

from dataclasses import dataclass, field
from typing import Literal, Optional, Any, Dict, List


# 消息角色类型（与 OpenAI 兼容接口的 role 字段对应）
Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class ChatMessage:
    """一条对话消息，既可用于请求，也可用于响应。

    - role: 消息角色，如 system/user/assistant。
    - content: 纯文本内容。
    - meta: 附加元数据（错误类型等），不发给 Provider，
      主要用于日志与上层 UI 展示。
    """

    role: Role
    content: str
    meta: Dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass
class ChatRequest:
    """一次完整的生成请求。

    会话层会将历史裁剪后生成 ChatRequest，再交给具体 Provider 客户端。
    """

    provider: str  # 逻辑 Provider 名，如 "openai"
    model: str  # 逻辑模型名，如 "shop-chat"（再由 registry 映射为真实模型名）
    messages: List[ChatMessage]
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


@dataclass
class ChatUsage:
    """Provider 返回的 token 统计信息（统一格式）。"""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class ChatChoice:
    """单个候选回答（目前只用 index=0 的一条）。"""

    index: int
    message: ChatMessage
    finish_reason: Optional[str] = None


@dataclass
class ChatResult:
    """一次生成调用的最终结果。

    - provider: 逻辑 Provider 名。
    - model: 逻辑模型名。
    - choices: 一个或多个候选回答。
    - usage: 可选的 token 使用统计。
    - raw: 原始响应 JSON，用于调试。
    """

    provider: str
    model: str
    choices: List[ChatChoice]
    usage: Optional[ChatUsage] = None
    raw: Optional[dict] = None
