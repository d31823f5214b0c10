from typing import List, Tuple

from assistant_core.domain.conversation import ConversationStore
from assistant_core.domain.exceptions import ValidationError
from assistant_core.domain.models import Message


class InMemoryConversationStore(ConversationStore):
    """进程内的会话历史，进程退出即丢失。"""

    def __init__(self) -> None:
        self._messages: List[Message] = []

    def append(self, message: Message) -> None:
        if not message.role or not message.content:
            raise ValidationError(code="EMPTY_MESSAGE", message="message role and content must be non-empty")
        self._messages.append(message)

    def clear(self) -> None:
        self._messages.clear()

    def windowed_view(self, max_turns: int) -> Tuple[Message, ...]:
        """返回最近 max_turns 条消息（按原顺序），不修改历史。"""
        if max_turns < 1:
            raise ValidationError(code="INVALID_WINDOW", message=f"max_turns must be >= 1, got {max_turns}")
        return tuple(self._messages[-max_turns:])

    def all(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)
