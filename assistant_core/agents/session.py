"""会话引擎核心模块。

ChatSession 负责一轮对话的完整流程：校验输入、写入用户消息、
按窗口裁剪上下文、调用 provider、写入回答或错误提示，并向观察者发出事件。

整个会话运行在单个 asyncio 事件循环里，AWAITING_RESPONSE 状态是唯一的并发闸门：
它在第一次 await 之前设置，因此等待回复期间到达的 submit 会被直接丢弃（不排队）。
"""

from dataclasses import dataclass
from typing import Optional, List, Dict, Any, Callable
from uuid import uuid4
import time
import logging

from assistant_core.domain.codec import extract_code
from assistant_core.domain.conversation import ConversationStore
from assistant_core.domain.exceptions import ApiError, ValidationError
from assistant_core.domain.models import (
    ChatRequest,
    ErrorKind,
    ErrorRecord,
    Message,
    SessionEvent,
    SessionState,
    TurnResult,
    TurnStatus,
)
from assistant_core.providers.base import ProviderClient
from assistant_core.prompts import load_system_prompt
from assistant_core.infrastructure.logging.logger import logger


MISSING_CREDENTIAL_TEMPLATE = (
    "**API key is not configured!**\n\n"
    "Please set your DeepSeek API key before chatting:\n"
    "1. Open the assistant settings (config.yaml or .env)\n"
    "2. Set `deepseek_api_key` (or the DEEPSEEK_API_KEY environment variable)\n"
    "3. Send your message again\n\n"
    "You can get a key at platform.deepseek.com"
)

TRANSCRIPT_LABELS = {"user": "You", "assistant": "DeepSeek", "system": "System"}

SessionListener = Callable[[SessionEvent], None]


def format_error_message(record: ErrorRecord) -> str:
    """把 ErrorRecord 渲染为写入历史的助手消息文本。"""

    return f"**Error:** {record.message}"


@dataclass
class SessionConfig:
    model: str = "deepseek-chat"
    max_tokens: int = 4000
    temperature: float = 0.7
    context_window: int = 8  # 每次请求携带的最近消息条数（按条数，不按 token）
    locale: str = "en"
    system_prompt: Optional[str] = None  # 为空时按 locale 加载默认提示词

    @classmethod
    def from_settings(cls, cfg) -> "SessionConfig":
        return cls(
            model=cfg.deepseek_model,
            max_tokens=cfg.max_tokens,
            temperature=cfg.temperature,
            context_window=cfg.context_window,
            locale=cfg.locale,
        )


class ChatSession:
    def __init__(
        self,
        store: ConversationStore,
        provider_client: ProviderClient,
        config: Optional[SessionConfig] = None,
        codec: Callable[[str], str] = extract_code,
    ):
        self._store = store
        self._provider_client = provider_client
        self._config = config or SessionConfig()
        self._codec = codec
        self._state = SessionState.IDLE
        self._listeners: List[SessionListener] = []
        self._system_prompt = self._config.system_prompt or load_system_prompt(self._config.locale)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._state is SessionState.AWAITING_RESPONSE

    def history(self):
        """当前历史的只读快照。"""
        return self._store.all()

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """注册观察者，返回取消订阅的函数。"""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def submit(self, user_text: str) -> TurnResult:
        """执行一轮对话。

        空白输入或正在等待回复时直接返回 DROPPED，不改变任何状态，也不发事件。
        缺少凭据时写入固定的说明消息，不调用 provider。
        其余情况下 provider 的失败都会变成一条助手错误消息，会话总会回到 IDLE。
        """
        if not user_text or not user_text.strip():
            return TurnResult(status=TurnStatus.DROPPED)
        if self._state is SessionState.AWAITING_RESPONSE:
            self._log(logging.INFO, "Dropped submission while awaiting response", {})
            return TurnResult(status=TurnStatus.DROPPED)

        start_time = time.time()
        log_ctx: Dict[str, Any] = {
            "trace_id": f"tr-{uuid4().hex}",
            "provider": self._provider_client.name,
        }

        # 1. 写入用户消息
        self._store.append(Message(role="user", content=user_text))
        self._emit_history()

        # 2. 前置条件：凭据
        if not self._provider_client.has_credential:
            record = ErrorRecord(kind=ErrorKind.MISSING_CREDENTIAL, message=MISSING_CREDENTIAL_TEMPLATE)
            reply = Message(role="assistant", content=MISSING_CREDENTIAL_TEMPLATE, error=record)
            self._store.append(reply)
            self._emit_history()
            self._log(logging.WARNING, "Missing API credential", log_ctx)
            return TurnResult(status=TurnStatus.MISSING_CREDENTIAL, reply=reply, error=record)

        # 3. 进入等待状态（必须在第一次 await 之前）
        self._state = SessionState.AWAITING_RESPONSE
        try:
            self._emit(SessionEvent(kind="typing-started"))
            req = self._build_request()
            self._log(
                logging.INFO,
                "Calling provider",
                log_ctx,
                model=req.model,
                message_count=len(req.messages),
            )
            try:
                text = await self._provider_client.complete(req)
            except ApiError as e:
                record = e.to_record()
                reply = Message(role="assistant", content=format_error_message(record), error=record)
                result = TurnResult(status=TurnStatus.FAILED, reply=reply, error=record)
                self._log(logging.WARNING, "Provider call failed", log_ctx, kind=record.kind.value)
            else:
                reply = Message(role="assistant", content=text)
                result = TurnResult(status=TurnStatus.COMPLETED, reply=reply)
            self._store.append(reply)
            return result
        finally:
            self._emit(SessionEvent(kind="typing-ended"))
            self._state = SessionState.IDLE
            self._emit_history()
            self._log(
                logging.INFO,
                "Completed turn",
                log_ctx,
                elapsed_seconds=round(time.time() - start_time, 2),
                history_length=len(self._store),
            )

    def reset(self) -> None:
        """清空历史。任何状态下都可以调用，通常只在 IDLE 时使用。"""

        self._store.clear()
        self._log(logging.INFO, "Conversation reset", {"state": self._state.value})
        self._emit_history()

    def export_transcript(self, fmt: str = "text") -> str:
        """按时间顺序导出历史，每条消息一段，带角色标签。

        - "text": ``You: ...``
        - "markdown": ``**You**: ...``
        """

        if fmt == "text":
            line = "{label}: {content}"
        elif fmt == "markdown":
            line = "**{label}**: {content}"
        else:
            raise ValidationError(code="UNKNOWN_FORMAT", message=f"Unknown transcript format: {fmt!r}")
        return "\n\n".join(
            line.format(label=TRANSCRIPT_LABELS.get(m.role, m.role), content=m.content)
            for m in self._store.all()
        )

    def code_for_insertion(self, text: str) -> str:
        """去掉回答中的代码围栏，得到可以直接插入编辑器的代码。"""

        return self._codec(text)

    def _build_request(self) -> ChatRequest:
        # 新的用户消息已经在窗口里，不需要再追加一次
        window = self._store.windowed_view(self._config.context_window)
        return ChatRequest(
            system_prompt=self._system_prompt,
            model=self._config.model,
            messages=list(window),
            max_tokens=self._config.max_tokens,
            temperature=self._config.temperature,
        )

    def _emit_history(self) -> None:
        self._emit(SessionEvent(kind="history-changed", snapshot=self._store.all()))

    def _emit(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                # 展示层的异常不能打断一轮对话的状态流转
                logger.exception("Session listener failed", extra={"extra": {"event": event.kind}})

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
