"""Provider 抽象接口。

上层服务不直接依赖具体厂商的 HTTP 接口，而是依赖此协议：

- 每个厂商实现一个 ProviderClient（如 OpenAIClient）。
- 负责：将请求转成具体 API 调用，并把响应 JSON 解析为统一模型。
- 负责：把鉴权缺失、远端拒绝、网络失败统一转换为 AssistantError。
"""

from typing import List, Protocol

from shop_assistant.domain.models import ChatRequest, ChatResult


class ProviderClient(Protocol):
    """AI Provider 客户端协议。

    实现者需要提供：
    - name: Provider 名称，用于日志/统计。
    - embed(text, model): 返回文本向量。
    - chat(req): 执行一次非流式对话调用，返回统一的 ChatResult。
    """

    name: str

    async def embed(self, text: str, model: str) -> List[float]:
        ...

    async def chat(self, req: ChatRequest) -> ChatResult:
        ...
