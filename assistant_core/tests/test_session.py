import asyncio

import pytest

from assistant_core.agents.session import ChatSession, SessionConfig, MISSING_CREDENTIAL_TEMPLATE
from assistant_core.infrastructure.storage.memory_store import InMemoryConversationStore
from assistant_core.domain.exceptions import ApiError, ValidationError
from assistant_core.domain.models import ErrorKind, SessionState, TurnStatus


class FakeProvider:
    """模拟的 Provider，记录收到的请求。"""

    name = "fake"

    def __init__(self, reply="done", error=None, has_credential=True):
        self.reply = reply
        self.error = error
        self.has_credential = has_credential
        self.requests = []

    async def complete(self, req):
        self.requests.append(req)
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.reply


def _session(provider, **config):
    return ChatSession(
        store=InMemoryConversationStore(),
        provider_client=provider,
        config=SessionConfig(system_prompt="sys", **config),
    )


def test_successful_turn():
    provider = FakeProvider(reply="4")
    session = _session(provider)

    result = asyncio.run(session.submit("2+2?"))

    assert result.status is TurnStatus.COMPLETED
    assert [(m.role, m.content) for m in session.history()] == [("user", "2+2?"), ("assistant", "4")]
    assert session.state is SessionState.IDLE
    req = provider.requests[0]
    assert req.system_prompt == "sys"
    assert req.model == "deepseek-chat"
    assert req.max_tokens == 4000
    assert req.temperature == 0.7
    assert req.stream is False


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_blank_submission_changes_nothing(text):
    provider = FakeProvider()
    session = _session(provider)
    events = []
    session.subscribe(events.append)

    result = asyncio.run(session.submit(text))

    assert result.status is TurnStatus.DROPPED
    assert len(session.history()) == 0
    assert session.state is SessionState.IDLE
    assert events == []
    assert provider.requests == []


def test_missing_credential_skips_provider():
    provider = FakeProvider(has_credential=False)
    session = _session(provider)
    events = []
    session.subscribe(events.append)

    result = asyncio.run(session.submit("hello"))

    assert result.status is TurnStatus.MISSING_CREDENTIAL
    history = session.history()
    assert [m.role for m in history] == ["user", "assistant"]
    assert history[1].content == MISSING_CREDENTIAL_TEMPLATE
    assert history[1].error.kind is ErrorKind.MISSING_CREDENTIAL
    assert provider.requests == []
    assert session.state is SessionState.IDLE
    assert "typing-started" not in [e.kind for e in events]


def test_rate_limited_turn_appends_error_message():
    provider = FakeProvider(error=ApiError(ErrorKind.RATE_LIMITED, "Request quota exceeded. Please try again later."))
    session = _session(provider)

    result = asyncio.run(session.submit("hi"))

    assert result.status is TurnStatus.FAILED
    assert result.error.kind is ErrorKind.RATE_LIMITED
    history = session.history()
    assert len(history) == 2
    assert history[1].role == "assistant"
    assert history[1].error.kind is ErrorKind.RATE_LIMITED
    assert "quota exceeded" in history[1].content
    assert session.state is SessionState.IDLE


def test_back_to_back_submissions_run_one_turn():
    provider = FakeProvider(reply="first")
    session = _session(provider)

    async def scenario():
        return await asyncio.gather(session.submit("a"), session.submit("b"))

    first, second = asyncio.run(scenario())

    assert first.status is TurnStatus.COMPLETED
    assert second.status is TurnStatus.DROPPED
    assert [(m.role, m.content) for m in session.history()] == [("user", "a"), ("assistant", "first")]
    assert len(provider.requests) == 1


def test_state_is_awaiting_during_provider_call():
    seen = {}

    class ObservingProvider(FakeProvider):
        async def complete(self, req):
            seen["state"] = session.state
            return await super().complete(req)

    session = _session(ObservingProvider())
    asyncio.run(session.submit("hi"))

    assert seen["state"] is SessionState.AWAITING_RESPONSE
    assert session.state is SessionState.IDLE


def test_event_order_for_a_turn():
    session = _session(FakeProvider())
    kinds = []
    session.subscribe(lambda e: kinds.append(e.kind))

    asyncio.run(session.submit("hi"))

    assert kinds == ["history-changed", "typing-started", "typing-ended", "history-changed"]


def test_history_snapshot_is_read_only():
    session = _session(FakeProvider())
    snapshots = []
    session.subscribe(lambda e: snapshots.append(e.snapshot) if e.snapshot is not None else None)

    asyncio.run(session.submit("hi"))

    assert isinstance(snapshots[-1], tuple)
    assert len(snapshots[0]) == 1
    assert len(snapshots[-1]) == 2


def test_failing_listener_does_not_break_turn():
    session = _session(FakeProvider(reply="ok"))

    def broken(event):
        raise RuntimeError("render failed")

    session.subscribe(broken)
    result = asyncio.run(session.submit("hi"))

    assert result.status is TurnStatus.COMPLETED
    assert session.state is SessionState.IDLE


def test_unsubscribe_stops_events():
    session = _session(FakeProvider())
    events = []
    unsubscribe = session.subscribe(events.append)
    unsubscribe()

    asyncio.run(session.submit("hi"))
    assert events == []


def test_request_uses_last_eight_messages_without_duplicates():
    provider = FakeProvider(reply="r")
    session = _session(provider)

    async def scenario():
        for i in range(6):
            await session.submit(f"q{i}")

    asyncio.run(scenario())

    last = provider.requests[-1]
    assert len(last.messages) == 8
    assert last.messages[-1].content == "q5"
    assert [m.content for m in last.messages].count("q5") == 1
    assert list(last.messages) == list(session.history()[-9:-1])
    assert len(session.history()) == 12


def test_context_window_is_configurable():
    provider = FakeProvider()
    session = _session(provider, context_window=1)

    async def scenario():
        await session.submit("one")
        await session.submit("two")

    asyncio.run(scenario())
    assert [m.content for m in provider.requests[-1].messages] == ["two"]


def test_reset_after_two_turns():
    session = _session(FakeProvider())
    store = session._store
    events = []

    async def scenario():
        await session.submit("one")
        await session.submit("two")

    asyncio.run(scenario())
    session.subscribe(events.append)
    session.reset()

    assert len(session.history()) == 0
    assert store.windowed_view(8) == ()
    assert events[-1].kind == "history-changed"
    assert events[-1].snapshot == ()


def test_unexpected_error_still_returns_to_idle():
    session = _session(FakeProvider(error=RuntimeError("boom")))

    with pytest.raises(RuntimeError):
        asyncio.run(session.submit("hi"))
    assert session.state is SessionState.IDLE


def test_export_transcript_formats():
    session = _session(FakeProvider(reply="4"))
    asyncio.run(session.submit("2+2?"))

    assert session.export_transcript("text") == "You: 2+2?\n\nDeepSeek: 4"
    assert session.export_transcript("markdown") == "**You**: 2+2?\n\n**DeepSeek**: 4"
    assert len(session.history()) == 2


def test_export_transcript_rejects_unknown_format():
    session = _session(FakeProvider())
    with pytest.raises(ValidationError):
        session.export_transcript("html")


def test_default_system_prompt_is_loaded():
    provider = FakeProvider()
    session = ChatSession(store=InMemoryConversationStore(), provider_client=provider)
    asyncio.run(session.submit("hi"))
    assert "DeepSeek" in provider.requests[0].system_prompt
