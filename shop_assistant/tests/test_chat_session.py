"""测试对话会话状态机。"""

import asyncio

from shop_assistant.agents.chat_session import (
    API_FALLBACK_TEXT,
    CONFIGURATION_TEXT,
    GENERIC_TEXT,
    NETWORK_TEXT,
    NOT_READY_TEXT,
    ChatSession,
)
from shop_assistant.agents.context_resolver import ContextResolver
from shop_assistant.domain.exceptions import AssistantError
from shop_assistant.domain.models import ChatChoice, ChatMessage, ChatResult
from shop_assistant.domain.shop import ShopRecord, SimilarityResult
from shop_assistant.providers.openai_client import OpenAIClient
from shop_assistant.services.ai_service import AIService


class ConfigStub:
    history_window = 6
    chat_model = "shop-chat"
    embedding_model = "shop-embedding"
    similarity_top_n = 1
    similarity_threshold = 0.5
    openai_api_key = "sk-test-0123456789"
    openai_base_url = "https://api.openai.com/v1"
    http_timeout = 1.0


class FakeProvider:
    """模拟的 Provider，可以注入错误或用 gate 挂起生成调用。"""

    name = "fake"

    def __init__(self, reply="We open at 7am.", error=None, gate=None):
        self.reply = reply
        self.error = error
        self.gate = gate
        self.embed_calls = 0
        self.requests = []

    async def embed(self, text, model):
        self.embed_calls += 1
        return [0.1, 0.2]

    async def chat(self, req):
        self.requests.append(req)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        msg = ChatMessage(role="assistant", content=self.reply)
        return ChatResult(provider="fake", model=req.model, choices=[ChatChoice(index=0, message=msg)])


class FakeDirectory:
    def __init__(self, fail_usage=False):
        self.fail_usage = fail_usage
        self.usage = []

    async def find_similar(self, vector, top_n, threshold):
        return [SimilarityResult("bean-there", 0.81)]

    async def record_usage(self, shop_id, count):
        if self.fail_usage:
            raise RuntimeError("directory down")
        self.usage.append((shop_id, count))


BEAN_THERE = ShopRecord(id="bean-there", name="Bean There", services="Coffee, pastries", embedding=[0.2, 0.8])


def make_session(provider=None, directory=None, shop=BEAN_THERE):
    provider = provider or FakeProvider()
    directory = directory or FakeDirectory()
    session = ChatSession(AIService(provider, ConfigStub()), directory, shop=shop, config=ConfigStub())
    return session, provider, directory


def test_session_seeded_with_greeting():
    session, _, _ = make_session()
    assert [m.role for m in session.messages] == ["assistant"]
    assert "Bean There" in session.messages[0].content
    assert session.state == "idle"
    assert session.error is None


def test_successful_turn_appends_user_then_assistant():
    async def scenario():
        session, provider, directory = make_session()
        session.draft = "  When do you open?  "
        reply = await session.send_message()
        await session.flush_usage()
        return session, provider, directory, reply

    session, provider, directory, reply = asyncio.run(scenario())
    assert reply.content == "We open at 7am."
    assert [(m.role, m.content) for m in session.messages[1:]] == [
        ("user", "When do you open?"),
        ("assistant", "We open at 7am."),
    ]
    assert session.draft == ""
    assert session.state == "idle"
    assert session.error is None
    assert directory.usage == [("bean-there", 1)]
    system_prompt = provider.requests[0].messages[0].content
    assert "Services: Coffee, pastries" in system_prompt


def test_explicit_resolver_supplies_ai_service():
    async def scenario():
        provider = FakeProvider()
        directory = FakeDirectory()
        resolver = ContextResolver(directory, AIService(provider, ConfigStub()), top_n=1, threshold=0.5)
        session = ChatSession(None, directory, shop=BEAN_THERE, resolver=resolver, config=ConfigStub())
        reply = await session.send_message("When do you open?")
        await session.flush_usage()
        return reply, provider

    reply, provider = asyncio.run(scenario())
    assert reply is not None
    assert reply.content == "We open at 7am."
    assert provider.embed_calls == 1


def test_blank_input_is_ignored():
    session, provider, _ = make_session()
    assert asyncio.run(session.send_message("   ")) is None
    assert len(session.messages) == 1
    assert provider.embed_calls == 0


def test_send_without_shop_is_ignored():
    session, provider, _ = make_session(shop=None)
    assert asyncio.run(session.send_message("hello")) is None
    assert session.messages == ()


def test_history_window_grows_then_caps():
    async def scenario():
        session, provider, _ = make_session()
        for i in range(5):
            await session.send_message(f"question {i}")
        await session.flush_usage()
        return provider

    provider = asyncio.run(scenario())
    assert [len(r.messages) for r in provider.requests] == [3, 5, 7, 8, 8]


def test_send_while_processing_is_rejected():
    async def scenario():
        gate = asyncio.Event()
        session, provider, _ = make_session(FakeProvider(gate=gate))
        first = asyncio.create_task(session.send_message("first"))
        await asyncio.sleep(0)
        assert session.busy
        second = await session.send_message("second")
        during = [m.content for m in session.messages]
        gate.set()
        reply = await first
        await session.flush_usage()
        return session, second, during, reply

    session, second, during, reply = asyncio.run(scenario())
    assert second is None
    assert during[1:] == ["first"]
    assert reply.content == "We open at 7am."
    assert [m.role for m in session.messages] == ["assistant", "user", "assistant"]
    assert not session.busy


def test_not_ready_shop_reports_without_calling_services():
    shop = ShopRecord(id="empty", name="Empty Shop")
    session, provider, _ = make_session(shop=shop)
    reply = asyncio.run(session.send_message("hours?"))
    assert reply.content == NOT_READY_TEXT
    assert session.error == NOT_READY_TEXT
    assert session.last_failure.kind == "not_ready"
    assert provider.embed_calls == 0
    assert provider.requests == []
    assert session.state == "idle"


def test_failure_texts_by_kind():
    cases = [
        (AssistantError.network("reset"), NETWORK_TEXT),
        (AssistantError.api(400, "Input is too long"), "Input is too long"),
        (AssistantError.api(500, None), API_FALLBACK_TEXT),
        (AssistantError.configuration("OPENAI_API_KEY not set"), CONFIGURATION_TEXT),
        (RuntimeError("unexpected"), GENERIC_TEXT),
    ]
    for error, expected in cases:
        session, _, directory = make_session(FakeProvider(error=error))
        reply = asyncio.run(session.send_message("hours?"))
        assert reply.content == expected
        assert reply.role == "assistant"
        assert session.error == expected
        assert [m.role for m in session.messages] == ["assistant", "user", "assistant"]
        assert session.state == "idle"
        assert directory.usage == []


def test_unauthorized_embedding_call_shows_configuration_text(monkeypatch):
    class Resp:
        status_code = 401
        text = ""

        def json(self):
            return {"error": {"message": "Incorrect API key provided"}}

    class Client:
        def __init__(self, *a, **kw):
            pass

        async def __aenter__(self):
            return self

        async def __aexit__(self, *a):
            return False

        async def post(self, *a, **kw):
            return Resp()

    monkeypatch.setattr("httpx.AsyncClient", Client)
    directory = FakeDirectory()
    session = ChatSession(
        AIService(OpenAIClient(ConfigStub()), ConfigStub()),
        directory,
        shop=BEAN_THERE,
        config=ConfigStub(),
    )
    reply = asyncio.run(session.send_message("hours?"))
    assert reply.content == CONFIGURATION_TEXT
    assert session.error == CONFIGURATION_TEXT
    assert len(session.messages) == 3
    assert session.state == "idle"


def test_usage_failure_does_not_touch_conversation():
    async def scenario():
        session, _, _ = make_session(directory=FakeDirectory(fail_usage=True))
        reply = await session.send_message("hours?")
        await session.flush_usage()
        return session, reply

    session, reply = asyncio.run(scenario())
    assert reply.content == "We open at 7am."
    assert session.messages[-1].content == "We open at 7am."
    assert session.error is None
    assert session.state == "idle"


def test_new_error_cleared_by_next_send():
    async def scenario():
        provider = FakeProvider(error=AssistantError.network("reset"))
        session, _, _ = make_session(provider)
        await session.send_message("first")
        banner = session.error
        provider.error = None
        await session.send_message("second")
        await session.flush_usage()
        return session, banner

    session, banner = asyncio.run(scenario())
    assert banner == NETWORK_TEXT
    assert session.error is None
    assert session.messages[-1].content == "We open at 7am."


def test_late_reply_dropped_after_close():
    async def scenario():
        gate = asyncio.Event()
        session, _, directory = make_session(FakeProvider(gate=gate))
        task = asyncio.create_task(session.send_message("hours?"))
        await asyncio.sleep(0)
        session.close()
        gate.set()
        result = await task
        await session.flush_usage()
        return session, directory, result

    session, directory, result = asyncio.run(scenario())
    assert result is None
    assert [m.role for m in session.messages] == ["assistant", "user"]
    assert not session.busy
    assert directory.usage == []


def test_loading_another_shop_reseeds_and_drops_in_flight_reply():
    async def scenario():
        gate = asyncio.Event()
        session, _, _ = make_session(FakeProvider(gate=gate))
        task = asyncio.create_task(session.send_message("hours?"))
        await asyncio.sleep(0)
        session.load_shop(ShopRecord(id="bike-barn", name="Bike Barn", hours="9-5", embedding=[0.4]))
        gate.set()
        result = await task
        await session.flush_usage()
        return session, result

    session, result = asyncio.run(scenario())
    assert result is None
    assert len(session.messages) == 1
    assert "Bike Barn" in session.messages[0].content


def test_reloading_same_shop_keeps_history():
    async def scenario():
        session, _, _ = make_session()
        await session.send_message("hours?")
        await session.flush_usage()
        session.load_shop(ShopRecord(id="bean-there", name="Bean There", hours="7-3", embedding=[0.2]))
        return session

    session = asyncio.run(scenario())
    assert len(session.messages) == 3
    assert session.shop.hours == "7-3"
