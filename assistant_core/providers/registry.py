"""Provider 端点配置。

集中维护各 Provider 的 base_url、chat/completions 路径和默认模型，
Client 只从这里读取默认值；后续接入其他 OpenAI 兼容的厂商时在此追加一项即可。"""

from dataclasses import dataclass
from typing import Mapping


@dataclass
class ProviderConfig:
    """某个 Provider 的整体配置。"""

    name: str
    base_url: str
    completions_path: str
    default_model: str


DEEPSEEK_CONFIG = ProviderConfig(
    name="deepseek",
    base_url="https://api.deepseek.com",
    completions_path="/v1/chat/completions",
    default_model="deepseek-chat",
)


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = {
    "deepseek": DEEPSEEK_CONFIG,
}


def get_provider_config(name: str) -> ProviderConfig:
    """根据名称获取 ProviderConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")
