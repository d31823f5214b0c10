"""DeepSeek Provider 适配器。

本模块负责：

1. 接收统一的 ChatRequest。
2. 将其转换为 DeepSeek（OpenAI 兼容）chat/completions 请求：
   - URL: {base_url}/v1/chat/completions
   - 认证: Authorization: Bearer <api_key>
   - 请求体: model/messages/max_tokens/temperature/stream
3. 调用 HTTP 接口，并把所有网络/API/解析异常归一化为 ApiError。
4. 只读取 choices[0].message.content 作为回答文本。

Client 内部不做任何重试，重试策略见 providers.retry。
"""

from typing import Any, Dict, Optional

import httpx

from assistant_core.config.settings import settings
from assistant_core.domain.exceptions import ApiError
from assistant_core.domain.models import ChatRequest, ErrorKind
from assistant_core.infrastructure.logging.logger import logger
from assistant_core.providers.registry import DEEPSEEK_CONFIG


# 各错误类别对应的用户可读文本
ERROR_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.UNAUTHORIZED: "Invalid API key. Check your settings.",
    ErrorKind.RATE_LIMITED: "Request quota exceeded. Please try again later.",
    ErrorKind.BAD_REQUEST: "Malformed request. Check the request parameters.",
    ErrorKind.SERVER_ERROR: "DeepSeek server error. Please try again later.",
    ErrorKind.TIMEOUT: "Request timed out. Check your internet connection.",
    ErrorKind.MALFORMED_RESPONSE: "Received an invalid response from the API.",
    ErrorKind.MISSING_CREDENTIAL: "DeepSeek API key is not configured.",
}

# 按优先级检查的 HTTP 状态码
_STATUS_KINDS: Dict[int, ErrorKind] = {
    401: ErrorKind.UNAUTHORIZED,
    429: ErrorKind.RATE_LIMITED,
    400: ErrorKind.BAD_REQUEST,
    500: ErrorKind.SERVER_ERROR,
}


class DeepSeekClient:
    """DeepSeek 提供方客户端实现。

    - name: Provider 名称（供日志/调试使用）。
    - complete: 对外统一调用入口，返回回答文本。
    """

    name = "deepseek"

    def __init__(self, cfg=settings):
        # Settings 里包含 base_url、api_key、超时等配置；每次调用时读取，
        # 这样修改配置后无需重建 Client
        self._settings = cfg

    @property
    def has_credential(self) -> bool:
        return bool(getattr(self._settings, "deepseek_api_key", None))

    @property
    def endpoint(self) -> str:
        base = getattr(self._settings, "deepseek_base_url", None) or DEEPSEEK_CONFIG.base_url
        return f"{base.rstrip('/')}{DEEPSEEK_CONFIG.completions_path}"

    async def complete(self, req: ChatRequest) -> str:
        """执行一次非流式对话调用。

        步骤：
        1. 检查凭据（缺失时不发请求）。
        2. 构造 HTTP 请求 payload。
        3. 发送请求，超时与网络错误分别归类。
        4. 按状态码归类 HTTP 错误，成功时解析回答文本。
        """

        if not self.has_credential:
            raise ApiError(
                ErrorKind.MISSING_CREDENTIAL,
                ERROR_MESSAGES[ErrorKind.MISSING_CREDENTIAL],
                http_status=400,
            )
        payload = self._build_payload(req)
        try:
            async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = await client.post(
                    self.endpoint,
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self._settings.deepseek_api_key}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.TimeoutException as e:
            logger.warning("DeepSeek request timed out", extra={"extra": {"error": str(e)}})
            raise ApiError(ErrorKind.TIMEOUT, ERROR_MESSAGES[ErrorKind.TIMEOUT], http_status=504) from e
        except httpx.RequestError as e:
            # 其他网络错误：DNS 失败、连接被拒绝等
            detail = str(e) or type(e).__name__
            logger.warning("DeepSeek request failed", extra={"extra": {"error": detail}})
            raise ApiError(ErrorKind.UNKNOWN, f"DeepSeek API error: {detail}") from e
        if resp.status_code >= 400:
            raise self._classify_status(resp)
        return self._parse_response(resp)

    def _build_payload(self, req: ChatRequest) -> Dict[str, Any]:
        """将 ChatRequest 转成 DeepSeek 所需的请求 JSON。"""

        messages = [{"role": "system", "content": req.system_prompt}]
        messages.extend(m.to_payload() for m in req.messages)
        return {
            "model": req.model or DEEPSEEK_CONFIG.default_model,
            "messages": messages,
            "max_tokens": req.max_tokens,
            "temperature": req.temperature,
            "stream": False,
        }

    def _classify_status(self, resp: httpx.Response) -> ApiError:
        """把非 2xx 响应转换为 ApiError。"""

        kind = _STATUS_KINDS.get(resp.status_code)
        logger.warning(
            "DeepSeek API returned an error status",
            extra={"extra": {"http_status": resp.status_code, "kind": (kind or ErrorKind.UNKNOWN).value}},
        )
        if kind is not None:
            return ApiError(kind, ERROR_MESSAGES[kind], http_status=resp.status_code)
        detail = self._provider_error_detail(resp) or resp.text or resp.reason_phrase
        return ApiError(ErrorKind.UNKNOWN, f"DeepSeek API error: {detail}", http_status=resp.status_code)

    @staticmethod
    def _provider_error_detail(resp: httpx.Response) -> Optional[str]:
        """读取 {"error": {"message": ...}} 形式的错误详情，没有则返回 None。"""

        try:
            data = resp.json()
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        return None

    def _parse_response(self, resp: httpx.Response) -> str:
        """只读取 choices[0].message.content，缺失即视为 MALFORMED_RESPONSE。"""

        try:
            data = resp.json()
        except ValueError as e:
            raise self._malformed("response is not JSON") from e
        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices or not isinstance(choices, list):
            raise self._malformed("no choices")
        first = choices[0] if isinstance(choices[0], dict) else {}
        message = first.get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise self._malformed("no textual content")
        return content

    @staticmethod
    def _malformed(reason: str) -> ApiError:
        logger.warning("Malformed DeepSeek response", extra={"extra": {"reason": reason}})
        return ApiError(
            ErrorKind.MALFORMED_RESPONSE,
            ERROR_MESSAGES[ErrorKind.MALFORMED_RESPONSE],
            reason=reason,
        )
