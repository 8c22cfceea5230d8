"""
DigiCert CertCentral REST API 的 HTTPS 客户端。

公开接口：
- ClientConfig: 客户端的不可变配置（令牌、基础地址、调试开关、超时）
- DigicertClient: 持有单个 httpx.Client 的 API 客户端，按顺序复用
- build_ssl_context: 构造强制 TLS 1.2+、TLS 1.2 套件白名单的 SSLContext
- read_json: 读取并关闭成功响应，用 Pydantic 模型解析响应体
"""

from __future__ import annotations

import ssl
from typing import NoReturn, Type, TypeVar

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, SecretStr, ValidationError

from ..errors import APIRequestRejected, InvalidResponse, NetworkError, TransportFailure
from .schemas import APIErrors

__version__ = "0.1.0"

DEFAULT_BASE_URL = "https://www.digicert.com/services/v2"

# TLS 1.2 下仅允许协商的两个 AEAD 套件
ALLOWED_CIPHERS = "ECDHE-ECDSA-AES128-GCM-SHA256:ECDHE-RSA-AES128-GCM-SHA256"

ModelT = TypeVar("ModelT", bound=BaseModel)


class ClientConfig(BaseModel):
    """构造时一次性确定的客户端配置，之后不可修改。"""

    model_config = ConfigDict(frozen=True)

    api_token: SecretStr
    base_url: str = DEFAULT_BASE_URL
    debug: bool = False
    timeout: float = 30.0
    user_agent: str = f"ordercert Python client {__version__}"


def build_ssl_context() -> ssl.SSLContext:
    """
    证书校验始终开启，最低 TLS 1.2。
    set_ciphers 只作用于 TLS 1.2，白名单限制的是 TLS 1.2 套件；
    协商到 TLS 1.3 时仍使用 OpenSSL 默认的 TLS 1.3 套件（均为 AEAD）。
    """
    ctx = ssl.create_default_context()
    ctx.minimum_version = ssl.TLSVersion.TLSv1_2
    ctx.set_ciphers(ALLOWED_CIPHERS)
    return ctx


def status_line(response: httpx.Response) -> str:
    return f"{response.status_code} {response.reason_phrase}".strip()


def _mask(token: str) -> str:
    if len(token) <= 4:
        return "****"
    return token[:4] + "*" * (len(token) - 4)


class DigicertClient:
    """
    DigiCert API 客户端。
    单个实例只维护一条 HTTPS 通道，可在同一进程内顺序复用，不提供并发访问保证。
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config
        # 显式传入 transport（测试用）时 httpx 不再读取环境代理
        self._http = httpx.Client(
            base_url=config.base_url.rstrip("/"),
            verify=build_ssl_context(),
            trust_env=True,
            timeout=config.timeout,
            transport=transport,
        )

    def __enter__(self) -> "DigicertClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def do(self, method: str, path: str, body: bytes | None = None) -> httpx.Response:
        """
        发送一次请求并检查状态码。
        :param method: HTTP 方法。
        :param path: 相对于 base_url 的路径，如 "/product"。
        :param body: 已编码的 JSON 请求体。
        :return: 状态码 < 300 的响应，响应体尚未读取，由调用方负责关闭。
        :raises NetworkError: 未拿到任何响应。
        :raises TransportFailure: 拿到响应但读取响应体失败。
        :raises APIRequestRejected: 状态码 >= 300。
        """
        headers = {
            "User-Agent": self.config.user_agent,
            "X-DC-DEVKEY": self.config.api_token.get_secret_value(),
            "Accept": "application/json",
        }
        if body is not None:
            headers["Content-Type"] = "application/json"
        request = self._http.build_request(method, path, headers=headers, content=body)
        if self.config.debug:
            self._dump_request(request)

        try:
            response = self._http.send(request, stream=True)
        except httpx.TransportError as e:
            raise NetworkError(f"请求 DigiCert API 未收到响应: {method} {request.url}") from e

        if response.status_code >= 300:
            self._raise_rejection(response)

        if self.config.debug:
            # 调试模式下需要先读出响应体才能完整打印；读完后 response.read() 仍可重复调用
            try:
                response.read()
            except httpx.TransportError as e:
                response.close()
                raise TransportFailure("读取 DigiCert 响应体失败", status_line(response)) from e
            self._dump_response(response)
        return response

    def _raise_rejection(self, response: httpx.Response) -> NoReturn:
        line = status_line(response)
        try:
            raw = response.read()
        except httpx.TransportError as e:
            raise TransportFailure("读取 DigiCert 错误响应体失败", line) from e
        finally:
            response.close()
        if self.config.debug:
            self._dump_response(response)

        text = raw.decode("utf-8", errors="replace")
        try:
            errors = APIErrors.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"无法解析 DigiCert 错误响应体: {line}")
            raise APIRequestRejected(line, raw_body=text, decode_error=str(e)) from e
        if not errors.errors:
            # 空的错误列表不含任何诊断信息，保留原始响应体
            raise APIRequestRejected(line, raw_body=text, decode_error="errors 列表为空")
        raise APIRequestRejected(line, errors=errors)

    def _dump_request(self, request: httpx.Request) -> None:
        lines = [f"{request.method} {request.url}"]
        for name, value in request.headers.items():
            if name.lower() == "x-dc-devkey":
                value = _mask(value)
            lines.append(f"{name}: {value}")
        if request.content:
            lines.append("")
            lines.append(request.content.decode("utf-8", errors="replace"))
        logger.debug("DigiCert 请求:\n" + "\n".join(lines))

    def _dump_response(self, response: httpx.Response) -> None:
        lines = [f"{response.http_version} {status_line(response)}"]
        lines.extend(f"{name}: {value}" for name, value in response.headers.items())
        lines.append("")
        lines.append(response.content.decode("utf-8", errors="replace"))
        logger.debug("DigiCert 响应:\n" + "\n".join(lines))


def read_json(response: httpx.Response, model: Type[ModelT]) -> ModelT:
    """
    读取并关闭响应，将响应体解析为指定的 Pydantic 模型。
    :raises TransportFailure: 读取响应体失败。
    :raises InvalidResponse: 响应体不是合法 JSON 或结构不符。
    """
    try:
        raw = response.read()
    except httpx.TransportError as e:
        raise TransportFailure("读取 DigiCert 响应体失败", status_line(response)) from e
    finally:
        response.close()
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        raise InvalidResponse(f"无法解析 DigiCert 响应体 ({status_line(response)})") from e
