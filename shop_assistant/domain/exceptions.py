"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在会话层或 UI 层做统一捕获与用户提示。

AI 服务相关的失败只有一个异常类型 AssistantError，通过 ``kind`` 字段区分：

- configuration: 凭据缺失或被拒绝，重试无意义。
- not_ready: 店铺缺少可检索的内容或向量，本次会话内无法恢复。
- api: 远端服务拒绝了请求，``remote_message`` 携带远端返回的错误说明。
- network: 传输层失败（超时、DNS、连接重置等）。
"""

from typing import Literal, Optional


ErrorKind = Literal["configuration", "not_ready", "api", "network"]


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "DIRECTORY_ERROR"）。
        message: 错误信息（用于日志与调试）。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 shop_id、provider 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class AssistantError(BusinessError):
    """AI 服务调用链路上的错误，按 kind 做扁平分发。"""

    def __init__(
        self,
        kind: ErrorKind,
        code: str,
        message: str,
        http_status: int = 400,
        remote_message: Optional[str] = None,
        **extra,
    ):
        self.kind = kind
        self.remote_message = remote_message
        super().__init__(code=code, message=message, http_status=http_status, **extra)

    @classmethod
    def configuration(
        cls, message: str, code: str = "MISSING_API_KEY", http_status: int = 500
    ) -> "AssistantError":
        return cls("configuration", code, message, http_status=http_status)

    @classmethod
    def not_ready(cls, shop_id: str) -> "AssistantError":
        return cls(
            "not_ready",
            "SHOP_NOT_READY",
            f"Shop {shop_id!r} has no embeddable content",
            http_status=409,
            shop_id=shop_id,
        )

    @classmethod
    def api(cls, http_status: int, remote_message: Optional[str], code: str = "API_ERROR") -> "AssistantError":
        return cls(
            "api",
            code,
            remote_message or f"AI service returned HTTP {http_status}",
            http_status=http_status,
            remote_message=remote_message,
        )

    @classmethod
    def network(cls, message: str) -> "AssistantError":
        return cls("network", "NETWORK_ERROR", message, http_status=503)
