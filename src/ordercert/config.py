"""
配置加载模块：支持命令行参数、环境变量、.env、工作目录 config.json（或 CONFIG_FILE 指定）多来源合并。
公开接口：
- Config: 读取配置的设置类
- Config.client_config: 由配置构造 DigiCert 客户端的不可变配置
内部方法：
- Config.settings_customise_sources: 自定义配置来源顺序
- Config.check_validity_years / Config.normalize_signature_hash: 字段校验
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Literal, Tuple

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource

from .digicert.client import DEFAULT_BASE_URL, ClientConfig
from .digicert.schemas import STANDARD_PEM_SERVER_PLATFORM_ID


class Config(BaseSettings):
    api_token: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("DIGICERT_API_TOKEN", "api_token"),
    )
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 30.0
    debug: bool = False

    host: str = ""
    ou: str = "Cloud Services"
    org: str = "Mozilla Corporation"
    locality: str = "Mountain View"
    state: str = "California"
    country: str = "US"
    # 仅作为主题信息收集，流水线本身不使用
    email: str = "hostmaster@mozilla.com"

    rsa_bits: int = 2048
    ecdsa_curve: str = ""
    signature_hash: Literal["sha256", "sha384", "sha512"] | None = None
    validity_years: int = 1

    organization_id: int = 147486
    product_name_id: str = "ssl"
    server_platform_id: int = STANDARD_PEM_SERVER_PLATFORM_ID

    model_config = SettingsConfigDict(
        env_prefix="ORDERCERT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("validity_years")
    @classmethod
    def check_validity_years(cls, value: int) -> int:
        if value not in (1, 2, 3):
            raise ValueError("validity_years 只能为 1、2 或 3")
        return value

    @field_validator("signature_hash", mode="before")
    @classmethod
    def normalize_signature_hash(cls, value: Any) -> Any:
        """空字符串视为未指定，其余统一转小写。"""
        if value is None or value == "":
            return None
        if isinstance(value, str):
            return value.strip().lower()
        return value

    def client_config(self) -> ClientConfig:
        return ClientConfig(
            api_token=self.api_token,
            base_url=self.base_url,
            debug=self.debug,
            timeout=self.timeout,
        )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """自定义配置来源顺序：入参 > 环境变量 > .env > config.json > secrets。"""

        class JsonFileSettingsSource(PydanticBaseSettingsSource):
            """从工作目录的 config.json（或 CONFIG_FILE 指定路径）加载配置的自定义 Source。"""

            def __init__(self, settings_cls):
                super().__init__(settings_cls)
                self._data: Dict[str, Any] | None = None

            def _load(self) -> None:
                if self._data is not None:
                    return
                cfg_path = os.environ.get("CONFIG_FILE")
                path = Path(cfg_path) if cfg_path else Path.cwd() / "config.json"
                if not path.exists():
                    self._data = {}
                    return
                try:
                    with path.open("r", encoding="utf-8") as f:
                        data = json.load(f)
                except (OSError, json.JSONDecodeError) as e:
                    raise ValueError(f"无法读取配置文件 {path}: {e}") from e
                self._data = data if isinstance(data, dict) else {}

            def __call__(self) -> Dict[str, Any]:
                self._load()
                return dict(self._data or {})

            def get_field_value(self, field, field_name):  # type: ignore[override]
                """为满足抽象基类要求，按字段名返回字段值。"""
                self._load()
                data = self._data or {}
                if field_name in data:
                    return data[field_name], field_name, False
                return None, field_name, False

        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonFileSettingsSource(settings_cls),
            file_secret_settings,
        )
