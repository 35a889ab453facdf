"""OpenAI 兼容接口的 Provider 适配器。

本模块负责：

1. 检查凭据是否配置（在任何网络调用之前）。
2. 将向量请求 / ChatRequest 转换为 HTTP 请求体。
3. 调用 HTTP 接口，把网络失败与远端错误转换为 AssistantError。
4. 将响应 JSON 解析为统一的向量 / ChatResult 结构。

没有缓存，也没有重试：一次失败直接交给调用方。
"""

from typing import Any, Dict, List, Optional

import httpx

from shop_assistant.domain.exceptions import AssistantError, BusinessError
from shop_assistant.domain.models import ChatChoice, ChatMessage, ChatRequest, ChatResult, ChatUsage
from shop_assistant.providers.registry import OPENAI_CONFIG, ModelConfig, resolve_model


# 凭据被远端拒绝时按配置错误处理
_AUTH_STATUSES = (401, 403)


class OpenAIClient:
    """OpenAI 提供方客户端实现。

    - name: Provider 名称（供日志/调试使用）。
    - embed / chat: 对外统一调用入口。
    """

    name = "openai"

    def __init__(self, settings):
        # Settings 里包含 base_url、api_key、超时等配置
        self._settings = settings

    async def embed(self, text: str, model: str = "shop-embedding") -> List[float]:
        """返回 text 的向量（响应中的第一条 embedding）。"""

        api_key = self._require_api_key()
        model_cfg = resolve_model(OPENAI_CONFIG, model)
        payload = {"model": model_cfg.provider_model, "input": text}
        data = await self._post("/embeddings", payload, api_key)
        try:
            return list(data["data"][0]["embedding"])
        except (KeyError, IndexError, TypeError) as e:
            raise BusinessError(code="BAD_RESPONSE", message=f"Malformed embedding response: {e!r}", http_status=502)

    async def chat(self, req: ChatRequest) -> ChatResult:
        """执行一次非流式对话调用。"""

        api_key = self._require_api_key()
        model_cfg = resolve_model(OPENAI_CONFIG, req.model)
        payload = self._build_payload(req, model_cfg)
        data = await self._post("/chat/completions", payload, api_key)
        return self._parse_response(data, req)

    def _require_api_key(self) -> str:
        api_key = getattr(self._settings, "openai_api_key", None)
        if not api_key:
            raise AssistantError.configuration("OPENAI_API_KEY not set")
        return api_key

    async def _post(self, path: str, payload: Dict[str, Any], api_key: str) -> Dict[str, Any]:
        base = getattr(self._settings, "openai_base_url", None) or OPENAI_CONFIG.base_url
        try:
            async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = await client.post(
                    f"{base.rstrip('/')}{path}",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {api_key}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接超时、连接重置等
            raise AssistantError.network(str(e) or type(e).__name__)
        if resp.status_code in _AUTH_STATUSES:
            raise AssistantError.configuration(
                self._remote_message(resp) or f"Credential rejected with HTTP {resp.status_code}",
                code="INVALID_API_KEY",
                http_status=resp.status_code,
            )
        if resp.status_code >= 400:
            code = "RATE_LIMIT" if resp.status_code == 429 else "API_ERROR"
            raise AssistantError.api(resp.status_code, self._remote_message(resp), code=code)
        try:
            return resp.json()
        except ValueError as e:
            raise BusinessError(code="BAD_RESPONSE", message=f"Response is not JSON: {e}", http_status=502)

    @staticmethod
    def _remote_message(resp) -> Optional[str]:
        """提取 {"error": {"message": ...}} 中的错误说明，取不到返回 None。"""

        try:
            body = resp.json()
        except ValueError:
            return None
        if not isinstance(body, dict):
            return None
        error = body.get("error")
        if isinstance(error, dict):
            message = error.get("message")
            return message or None
        if isinstance(error, str):
            return error or None
        return None

    def _build_payload(self, req: ChatRequest, model_cfg: ModelConfig) -> dict:
        """将 ChatRequest 转成 chat/completions 所需的请求 JSON。"""

        payload: Dict[str, Any] = {
            "model": model_cfg.provider_model,
            "messages": [{"role": m.role, "content": m.content} for m in req.messages],
        }
        temperature = req.temperature if req.temperature is not None else model_cfg.default_temperature
        max_tokens = req.max_tokens or model_cfg.max_tokens
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        return payload

    def _parse_response(self, data: dict, req: ChatRequest) -> ChatResult:
        """将原始响应 JSON 解析为统一的 ChatResult。"""

        choices: list[ChatChoice] = []
        for i, ch in enumerate(data.get("choices") or []):
            msg = ch.get("message") or {}
            choices.append(
                ChatChoice(
                    index=ch.get("index", i),
                    message=ChatMessage(role=msg.get("role") or "assistant", content=msg.get("content") or ""),
                    finish_reason=ch.get("finish_reason"),
                )
            )
        if not choices:
            raise BusinessError(code="BAD_RESPONSE", message="Chat response has no choices", http_status=502)
        usage_raw = data.get("usage") or {}
        usage = None
        if usage_raw:
            usage = ChatUsage(
                prompt_tokens=usage_raw.get("prompt_tokens", 0),
                completion_tokens=usage_raw.get("completion_tokens", 0),
                total_tokens=usage_raw.get("total_tokens", 0),
            )
        return ChatResult(provider=self.name, model=req.model, choices=choices, usage=usage, raw=data)
