from typing import Protocol, Tuple

from .models import Message


class ConversationStore(Protocol):
    """有序消息日志。

    Session 只通过 append/clear 修改历史；windowed_view 与 all
    都是只读视图，不会改变已存储的历史。
    """

    def append(self, message: Message) -> None:
        ...

    def clear(self) -> None:
        ...

    def windowed_view(self, max_turns: int) -> Tuple[Message, ...]:
        ...

    def all(self) -> Tuple[Message, ...]:
        ...

    def __len__(self) -> int:
        ...
