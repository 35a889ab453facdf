"""系统提示词加载工具。

按语言(locale) 从 prompts/<locale> 目录读取 system prompt 模板，
用于构造 ChatMessage(role="system")。
"""

from pathlib import Path


PROMPTS_DIR = Path(__file__).resolve().parent

CONTEXT_PLACEHOLDER = "{shop_context}"


def load_system_prompt(grounding_context: str, locale: str = "en") -> str:
    """根据是否有店铺上下文选择提示词模板。

    有上下文时使用 grounded_system.md 并把上下文填入占位符；
    上下文为空时使用 unavailable_system.md，要求模型直接说明店铺信息暂不可用。
    """

    if grounding_context:
        template = (PROMPTS_DIR / locale / "grounded_system.md").read_text(encoding="utf-8")
        return template.replace(CONTEXT_PLACEHOLDER, grounding_context).strip()
    return (PROMPTS_DIR / locale / "unavailable_system.md").read_text(encoding="utf-8").strip()
