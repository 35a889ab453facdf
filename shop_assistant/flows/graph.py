"""LangGraph construction for the reply pipeline.

resolve_context -> generate -> END。节点里抛出的 AssistantError 原样穿出
``ainvoke``，由 ChatSession 统一转换为用户可读文案。
"""

from __future__ import annotations

from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph

from shop_assistant.agents.context_resolver import ContextResolver
from shop_assistant.flows.state import ReplyState
from shop_assistant.infrastructure.logging.logger import logger
from shop_assistant.services.ai_service import AIService


def build_reply_graph(resolver: ContextResolver, ai_service: AIService) -> CompiledStateGraph:
    async def resolve_context_node(state: ReplyState) -> ReplyState:
        logger.info("resolve_context.start", extra={"extra": state.get("log_ctx") or {}})
        context = await resolver.resolve(state["question"], state["shop"], state.get("log_ctx"))
        return {"context": context}

    async def generate_node(state: ReplyState) -> ReplyState:
        logger.info("generate.start", extra={"extra": state.get("log_ctx") or {}})
        reply = await ai_service.generate_reply(
            state["question"],
            state.get("context") or "",
            state.get("history") or [],
            state.get("log_ctx"),
        )
        return {"reply": reply}

    graph = StateGraph(ReplyState)
    graph.add_node("resolve_context", resolve_context_node)
    graph.add_node("generate", generate_node)
    graph.set_entry_point("resolve_context")
    graph.add_edge("resolve_context", "generate")
    graph.add_edge("generate", END)
    return graph.compile()
