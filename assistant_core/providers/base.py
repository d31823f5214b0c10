"""Provider 抽象接口。

上层 ChatSession 不直接依赖具体厂商的 HTTP 调用，而是依赖此协议：

- 每个厂商实现一个 ProviderClient（如 DeepSeekClient）。
- 负责：将 ChatRequest 转成具体 API 请求，并返回第一条回答的文本。
- 所有失败都必须以 ApiError 抛出。

测试中可以用任意实现了 complete() 的假对象替换真实 Client。
"""

from typing import Protocol

from assistant_core.domain.models import ChatRequest


class ProviderClient(Protocol):
    """LLM Provider 客户端协议。

    实现者需要提供：
    - name: Provider 名称，用于日志/统计。
    - has_credential: 是否已配置凭据。
    - complete(req): 执行一次非流式对话调用，返回回答文本。
    """

    name: str

    @property
    def has_credential(self) -> bool:
        ...

    async def complete(self, req: ChatRequest) -> str:
        ...
