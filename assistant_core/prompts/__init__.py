"""提示词加载工具。

按语言(locale) 从 prompts/<locale> 目录读取：
- chat_system.md: 聊天会话的 system prompt，每次请求时合成 system 消息。
- code_tasks.yaml: 代码助手一次性任务（解释、重构、调试等）的模板。
"""

from functools import lru_cache
from pathlib import Path
from typing import Dict

import yaml


PROMPTS_DIR = Path(__file__).resolve().parent


@lru_cache(maxsize=None)
def load_system_prompt(locale: str = "en") -> str:
    """加载聊天会话的系统提示词文本。"""

    fname = PROMPTS_DIR / locale / "chat_system.md"
    return fname.read_text(encoding="utf-8").strip()


@lru_cache(maxsize=None)
def load_task_templates(locale: str = "en") -> Dict[str, str]:
    """加载代码助手任务模板，key 为任务名。"""

    fname = PROMPTS_DIR / locale / "code_tasks.yaml"
    data = yaml.safe_load(fname.read_text(encoding="utf-8")) or {}
    return {str(k): str(v) for k, v in data.items()}
