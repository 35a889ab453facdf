"""Shop Assistant 顶层包。

该包提供店铺对话助手的核心实现：配置加载、领域模型、Provider 适配、
上下文解析、会话状态机以及使用量统计。回答只依据店主提供的店铺信息。
"""

from shop_assistant.agents.chat_session import ChatSession
from shop_assistant.api.service import open_chat_session

__all__ = ["ChatSession", "open_chat_session"]
