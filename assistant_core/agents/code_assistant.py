"""代码助手的一次性任务。

与 ChatSession 不同，这里的每个任务都是独立的单轮请求：
按模板生成一条 user 消息，直接调用 provider，结果不写入会话历史。
代码片段从哪里来（编辑器选区、整个文件）由调用方决定。
"""

from typing import Optional

from assistant_core.domain.exceptions import ValidationError
from assistant_core.domain.models import ChatRequest, Message
from assistant_core.agents.session import SessionConfig
from assistant_core.providers.base import ProviderClient
from assistant_core.prompts import load_system_prompt, load_task_templates
from assistant_core.infrastructure.logging.logger import logger


class CodeAssistant:
    """代码解释、生成、重构、调试等一次性任务的便捷包装类。"""

    def __init__(self, provider_client: ProviderClient, config: Optional[SessionConfig] = None):
        self._provider_client = provider_client
        self._config = config or SessionConfig()
        self._templates = load_task_templates(self._config.locale)

    async def explain(self, code: str, language: str) -> str:
        return await self._run("explain", code=_require(code, "code"), language=language)

    async def generate(self, description: str, language: str) -> str:
        return await self._run("generate", description=_require(description, "description"), language=language)

    async def refactor(self, code: str, language: str, instructions: str = "") -> str:
        """重构代码；instructions 为可选的额外要求。"""
        suffix = f" taking into account: {instructions.strip()}" if instructions and instructions.strip() else ""
        return await self._run("refactor", code=_require(code, "code"), language=language, instructions=suffix)

    async def debug(self, code: str, language: str) -> str:
        return await self._run("debug", code=_require(code, "code"), language=language)

    async def optimize(self, code: str, language: str) -> str:
        return await self._run("optimize", code=_require(code, "code"), language=language)

    async def document(self, code: str, language: str) -> str:
        return await self._run("document", code=_require(code, "code"), language=language)

    async def translate(self, code: str, source_language: str, target_language: str) -> str:
        return await self._run(
            "translate",
            code=_require(code, "code"),
            source_language=source_language,
            target_language=_require(target_language, "target_language"),
        )

    async def review(self, code: str, language: str) -> str:
        return await self._run("review", code=_require(code, "code"), language=language)

    async def generate_tests(self, code: str, language: str) -> str:
        return await self._run("tests", code=_require(code, "code"), language=language)

    async def analyze_complexity(self, code: str, language: str) -> str:
        return await self._run("complexity", code=_require(code, "code"), language=language)

    def build_prompt(self, task: str, **fields: str) -> str:
        try:
            template = self._templates[task]
        except KeyError:
            raise ValidationError(code="UNKNOWN_TASK", message=f"Unknown code task: {task!r}")
        return template.format(**fields)

    async def _run(self, task: str, **fields: str) -> str:
        # 缺少凭据时 provider 会抛 ApiError(MISSING_CREDENTIAL)，交给调用方提示
        prompt = self.build_prompt(task, **fields)
        req = ChatRequest(
            system_prompt=self._config.system_prompt or load_system_prompt(self._config.locale),
            model=self._config.model,
            messages=[Message(role="user", content=prompt)],
            max_tokens=self._config.max_tokens,
            temperature=self._config.temperature,
        )
        logger.info("Running code task", extra={"extra": {"task": task, "provider": self._provider_client.name}})
        return await self._provider_client.complete(req)


def _require(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(code="EMPTY_INPUT", message=f"{field_name} must not be empty")
    return value
