"""对外 API 服务模块。

ChatService 是宿主（编辑器插件、控制台等）与会话引擎之间的唯一边界：
每个宿主命令对应一个方法，事件通过 subscribe 以 SessionEvent 推送。
编辑器插入与剪贴板由宿主以协议对象的形式注入。
"""

from pathlib import Path
from typing import Callable, Optional, Protocol, Union

from assistant_core.agents.session import ChatSession, SessionConfig, SessionListener
from assistant_core.config.settings import settings
from assistant_core.domain.exceptions import ValidationError
from assistant_core.domain.models import TurnResult
from assistant_core.infrastructure.logging.logger import logger
from assistant_core.infrastructure.storage.memory_store import InMemoryConversationStore
from assistant_core.infrastructure.storage.transcript_file import write_transcript
from assistant_core.providers import create_provider


class EditorInserter(Protocol):
    """把代码插入当前编辑器（有选区时替换选区）。"""

    def insert(self, code: str) -> None:
        ...


class Clipboard(Protocol):
    def write_text(self, text: str) -> None:
        ...


class ChatService:
    def __init__(
        self,
        session: ChatSession,
        editor: Optional[EditorInserter] = None,
        clipboard: Optional[Clipboard] = None,
    ):
        self._session = session
        self._editor = editor
        self._clipboard = clipboard

    @property
    def session(self) -> ChatSession:
        return self._session

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        return self._session.subscribe(listener)

    async def submit(self, text: str) -> TurnResult:
        return await self._session.submit(text)

    def reset(self) -> None:
        self._session.reset()

    def export_transcript(self, fmt: str = "markdown") -> str:
        return self._session.export_transcript(fmt)

    def insert_code(self, text: str) -> str:
        """去掉代码围栏后交给编辑器插入，返回实际插入的代码。

        Raises:
            ValidationError: 宿主没有提供编辑器。
        """
        if self._editor is None:
            raise ValidationError(code="NO_EDITOR", message="Open a file to insert code")
        code = self._session.code_for_insertion(text)
        if not code:
            return code
        self._editor.insert(code)
        logger.info("Inserted code into editor", extra={"extra": {"chars": len(code)}})
        return code

    def copy_transcript(self) -> str:
        """把纯文本历史写入剪贴板，返回写入的文本。"""

        if self._clipboard is None:
            raise ValidationError(code="NO_CLIPBOARD", message="Clipboard is not available")
        text = self._session.export_transcript("text")
        self._clipboard.write_text(text)
        return text

    def save_transcript(self, path: Union[str, Path]) -> Path:
        """把 markdown 历史保存到文件。"""

        target = write_transcript(path, self._session.export_transcript("markdown"))
        logger.info("Saved transcript", extra={"extra": {"path": str(target)}})
        return target


def create_chat_service(
    cfg=None,
    editor: Optional[EditorInserter] = None,
    clipboard: Optional[Clipboard] = None,
) -> ChatService:
    """按配置组装 Store、Provider 与 Session；每次调用都得到独立的会话。"""

    cfg = cfg or settings
    session = ChatSession(
        store=InMemoryConversationStore(),
        provider_client=create_provider(cfg=cfg),
        config=SessionConfig.from_settings(cfg),
    )
    return ChatService(session, editor=editor, clipboard=clipboard)
