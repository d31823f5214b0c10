"""统一的对话与结果数据模型。

本模块定义了会话引擎内部共享的标准数据结构：

- Message: 一条已经写入历史的对话消息（user/assistant），不可变。
- ChatRequest: 每一轮发给 LLM Provider 的完整请求（不持久化）。
- ErrorRecord: 归一化之后的错误记录，只包含错误类别与用户可读文本。
- TurnResult: 一次 submit 调用的结果。
- SessionEvent: 会话向展示层发出的通知。

Provider 适配器（如 DeepSeekClient）只依赖这些模型，
并负责在 API JSON 与这些模型之间做转换。
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional, List, Tuple, Dict


# 消息角色（与 OpenAI / DeepSeek 的 role 字段对应）
Role = Literal["system", "user", "assistant"]


class ErrorKind(str, Enum):
    """错误类别。值同时作为机器可读的错误码使用。"""

    UNAUTHORIZED = "UNAUTHORIZED"
    RATE_LIMITED = "RATE_LIMITED"
    BAD_REQUEST = "BAD_REQUEST"
    SERVER_ERROR = "SERVER_ERROR"
    TIMEOUT = "TIMEOUT"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    UNKNOWN = "UNKNOWN"
    # 本地前置条件失败，不是网络错误
    MISSING_CREDENTIAL = "MISSING_CREDENTIAL"


@dataclass(frozen=True)
class ErrorRecord:
    """归一化后的错误：kind + 用户可读文本。"""

    kind: ErrorKind
    message: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Message:
    """一条对话消息，写入历史后不再修改。

    - role: 消息角色。
    - content: 纯文本内容。
    - created_at: 写入时间（UTC）。
    - error: 当该消息是会话合成的错误提示时，保存对应的 ErrorRecord，
      方便展示层或测试区分“正常回答”和“错误回答”。
    """

    role: Role
    content: str
    created_at: datetime = field(default_factory=_utcnow)
    error: Optional[ErrorRecord] = None

    def to_payload(self) -> Dict[str, str]:
        """转换为 API 需要的 {role, content} 结构。"""

        return {"role": self.role, "content": self.content}


@dataclass
class ChatRequest:
    """一次完整的聊天请求。

    Session 会把窗口内的历史与系统提示词组合成 ChatRequest，
    再交给具体 ProviderClient；system prompt 不写入历史，只在这里合成。
    """

    system_prompt: str
    model: str
    messages: List[Message]
    max_tokens: int = 4000
    temperature: float = 0.7
    stream: bool = False


class SessionState(str, Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"


class TurnStatus(str, Enum):
    """submit 的结果类别。"""

    DROPPED = "dropped"  # 空输入或正在等待回复，什么也没发生
    MISSING_CREDENTIAL = "missing_credential"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class TurnResult:
    status: TurnStatus
    reply: Optional[Message] = None
    error: Optional[ErrorRecord] = None


EventKind = Literal["history-changed", "typing-started", "typing-ended"]


@dataclass(frozen=True)
class SessionEvent:
    """会话发给观察者（展示层）的事件。

    kind:
        - "history-changed": 历史发生变化，snapshot 为当前完整历史的只读快照。
        - "typing-started": 开始等待模型回复。
        - "typing-ended": 本轮请求结束（无论成功或失败）。
    """

    kind: EventKind
    snapshot: Optional[Tuple[Message, ...]] = None
