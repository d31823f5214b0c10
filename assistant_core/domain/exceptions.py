"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在 Session 层或 UI 层做统一捕获与用户提示。
"""

from assistant_core.domain.models import ErrorKind, ErrorRecord


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "STORE_WRITE_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 trace_id、provider 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ApiError(BusinessError):
    """LLM Provider 调用失败。

    Provider 适配器必须把所有网络/HTTP/解析异常归一化为 ApiError，
    不允许原始的 httpx 异常越过 Provider 边界。
    """

    def __init__(self, kind: ErrorKind, message: str, http_status: int = 502, **extra):
        self.kind = kind
        super().__init__(code=kind.value, message=message, http_status=http_status, **extra)

    def to_record(self) -> ErrorRecord:
        return ErrorRecord(kind=self.kind, message=self.message)


class ValidationError(BusinessError):
    """参数或配置校验失败。"""
