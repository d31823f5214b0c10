import asyncio

import pytest

from assistant_core.api.service import ChatService, create_chat_service
from assistant_core.agents.session import ChatSession, SessionConfig
from assistant_core.infrastructure.storage.memory_store import InMemoryConversationStore
from assistant_core.domain.exceptions import ValidationError
from assistant_core.providers.deepseek_client import DeepSeekClient
from assistant_core.providers.retry import RetryingProvider


class FakeProvider:
    name = "fake"
    has_credential = True

    async def complete(self, req):
        return "```python\nprint('hi')\n```"


class FakeEditor:
    def __init__(self):
        self.inserted = []

    def insert(self, code):
        self.inserted.append(code)


class FakeClipboard:
    def __init__(self):
        self.text = None

    def write_text(self, text):
        self.text = text


class SettingsStub:
    deepseek_api_key = None
    deepseek_base_url = "https://api.deepseek.com"
    deepseek_model = "deepseek-coder"
    http_timeout = 1.0
    max_tokens = 100
    temperature = 0.2
    context_window = 4
    retry_attempts = 1
    locale = "en"


def _service(editor=None, clipboard=None):
    session = ChatSession(
        store=InMemoryConversationStore(),
        provider_client=FakeProvider(),
        config=SessionConfig(system_prompt="sys"),
    )
    return ChatService(session, editor=editor, clipboard=clipboard)


def test_insert_code_strips_fences_before_editor():
    editor = FakeEditor()
    service = _service(editor=editor)
    asyncio.run(service.submit("print hi"))
    reply = service.session.history()[-1].content

    assert service.insert_code(reply) == "print('hi')"
    assert editor.inserted == ["print('hi')"]


def test_insert_code_without_editor():
    with pytest.raises(ValidationError):
        _service().insert_code("x")


def test_insert_code_skips_empty_code():
    editor = FakeEditor()
    assert _service(editor=editor).insert_code("```\n```") == ""
    assert editor.inserted == []


def test_copy_transcript_uses_plain_text_export():
    clipboard = FakeClipboard()
    service = _service(clipboard=clipboard)
    asyncio.run(service.submit("hi"))

    text = service.copy_transcript()
    assert clipboard.text == text
    assert text.startswith("You: hi\n\nDeepSeek: ")


def test_save_transcript_writes_markdown(tmp_path):
    service = _service()
    asyncio.run(service.submit("hi"))

    target = service.save_transcript(tmp_path / "out" / "chat.md")

    content = target.read_text(encoding="utf-8")
    assert content.startswith("**You**: hi")
    assert list(target.parent.iterdir()) == [target]


def test_reset_through_service():
    service = _service()
    asyncio.run(service.submit("hi"))
    service.reset()
    assert service.export_transcript() == ""


def test_create_chat_service_wires_settings():
    service = create_chat_service(SettingsStub())
    session = service.session
    assert isinstance(session._provider_client, DeepSeekClient)
    assert session._config.model == "deepseek-coder"
    assert session._config.context_window == 4


def test_create_chat_service_enables_retry():
    class RetrySettings(SettingsStub):
        retry_attempts = 3

    service = create_chat_service(RetrySettings())
    assert isinstance(service.session._provider_client, RetryingProvider)


def test_services_do_not_share_history():
    a = create_chat_service(SettingsStub())
    b = create_chat_service(SettingsStub())
    asyncio.run(a.submit("hello"))
    assert len(a.session.history()) == 2
    assert len(b.session.history()) == 0
