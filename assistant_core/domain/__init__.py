"""领域层模型与协议。

包含：
- models: Message / ChatRequest / SessionEvent 等统一模型。
- conversation: ConversationStore 抽象。
- codec: 从回答中提取代码块。
- exceptions: 业务异常类型定义。
"""
