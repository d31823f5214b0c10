"""Assistant Core 顶层包。

该包提供编辑器 AI 助手的会话引擎，
包括配置加载、领域模型、DeepSeek Provider 适配、会话状态机、
代码助手任务以及面向宿主的命令/事件接口。
"""

from assistant_core.api.service import ChatService, create_chat_service

__all__ = ["ChatService", "create_chat_service"]
