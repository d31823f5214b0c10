"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护端点配置 (registry)。
- 提供具体实现 (deepseek_client)。
- 可选的重试策略包装 (retry)。
"""

from typing import Optional

from assistant_core.config.settings import settings
from assistant_core.providers.base import ProviderClient
from assistant_core.providers.deepseek_client import DeepSeekClient
from assistant_core.providers.registry import get_provider_config
from assistant_core.providers.retry import RetryingProvider


def create_provider(name: Optional[str] = None, cfg=None) -> ProviderClient:
    """根据名称创建 Provider 实例；retry_attempts > 1 时包上一层重试。

    未知名称抛出 KeyError。
    """

    cfg = cfg or settings
    # 目前只有 DeepSeek 一家；未知名称在这里抛 KeyError
    get_provider_config(name or "deepseek")
    client: ProviderClient = DeepSeekClient(cfg)
    attempts = getattr(cfg, "retry_attempts", 1)
    if attempts > 1:
        client = RetryingProvider(client, max_attempts=attempts)
    return client
