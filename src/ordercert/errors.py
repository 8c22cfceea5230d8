"""
证书下单流程的错误类型定义。

所有错误都继承自 CertOrderError，携带一条上下文消息链（由外向内），
上层通过 with_context() 追加上下文后原样重新抛出，错误类型保持不变。
"""

from __future__ import annotations

from typing import List

from .digicert.schemas import APIErrors


class CertOrderError(Exception):
    """证书下单流程中所有错误的基类。"""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.contexts: List[str] = []

    def with_context(self, context: str) -> "CertOrderError":
        """在消息链最外层追加一条上下文，返回自身以便直接 raise。"""
        self.contexts.insert(0, context)
        return self

    def __str__(self) -> str:
        parts = [*self.contexts, self.message]
        if self.__cause__ is not None:
            cause = str(self.__cause__)
            if cause not in self.message:
                parts.append(cause)
        return ": ".join(p for p in parts if p)


class InvalidHostList(CertOrderError):
    pass


class UnsupportedAlgorithm(CertOrderError):
    pass


class KeyGenerationFailed(CertOrderError):
    pass


class CSRConstructionFailed(CertOrderError):
    pass


class CSRParseFailed(CertOrderError):
    pass


class UnknownKeyType(CertOrderError):
    pass


class KeyEncodingFailed(CertOrderError):
    pass


class NetworkError(CertOrderError):
    """请求未能拿到任何响应（连接失败、TLS 握手失败、超时等）。"""


class TransportFailure(CertOrderError):
    """已经拿到响应，但读取响应体时传输层出错。"""

    def __init__(self, message: str, status_line: str) -> None:
        super().__init__(f"{message}: {status_line}")
        self.status_line = status_line


class APIRequestRejected(CertOrderError):
    """
    CA 返回了 >= 300 的状态码。
    能解析出结构化错误时 errors 不为空；否则保留原始响应体 raw_body 与解析错误 decode_error。
    """

    def __init__(
        self,
        status_line: str,
        errors: APIErrors | None = None,
        raw_body: str | None = None,
        decode_error: str | None = None,
    ) -> None:
        if errors is not None:
            detail = str(errors)
        else:
            detail = f"{raw_body}（错误响应体解析失败: {decode_error}）"
        super().__init__(f"请求 DigiCert API 失败: {status_line}: {detail}")
        self.status_line = status_line
        self.errors = errors
        self.raw_body = raw_body
        self.decode_error = decode_error


class InvalidResponse(CertOrderError):
    pass


class OrderRejected(CertOrderError):
    def __init__(self, status_line: str) -> None:
        super().__init__(f"订单未被创建: {status_line}")
        self.status_line = status_line


class AmbiguousOrderResponse(CertOrderError):
    def __init__(self, request_count: int) -> None:
        super().__init__(
            f"DigiCert 响应中应恰好包含一个请求，实际为 {request_count} 个"
        )
        self.request_count = request_count
