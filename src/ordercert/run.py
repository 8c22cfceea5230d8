#!/usr/bin/env python
"""
命令行入口：生成私钥与 CSR，并向 DigiCert 提交证书订单。
"""

import argparse
import os
import sys
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from loguru import logger

from .config import Config
from .csr.core import parse_hosts
from .errors import CertOrderError, InvalidHostList
from .main import order_certificate


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ordercert",
        description="生成私钥与 CSR，并向 DigiCert 提交证书订单",
    )
    parser.add_argument("-D", "--debug", action="store_true", default=None, help="输出调试信息")
    parser.add_argument("--host", help="逗号分隔的主机名与 IP 列表，第一项作为通用名")
    parser.add_argument("--ou", help="组织单位")
    parser.add_argument("--org", help="组织")
    parser.add_argument("--loc", dest="locality", help="城市")
    parser.add_argument("--st", dest="state", help="州/省")
    parser.add_argument("--c", dest="country", help="国家代码")
    parser.add_argument("--email", help="联系邮箱")
    parser.add_argument("--rsa-bits", type=int, help="RSA 私钥位数，默认 2048，指定 --ecdsa-curve 时忽略")
    parser.add_argument("--ecdsa-curve", help="使用的 ECDSA 曲线，可选 P256、P384")
    parser.add_argument("--signature-hash", help="CSR 签名哈希：sha256、sha384 或 sha512")
    parser.add_argument("--validity-years", type=int, help="证书有效期（年）：1（默认）、2 或 3")
    parser.add_argument("--org-id", dest="organization_id", type=int, help="DigiCert 组织 ID")
    parser.add_argument("--product", dest="product_name_id", help="DigiCert 产品标识，默认 ssl")
    return parser


def setup_logging(debug: bool) -> None:
    level = "DEBUG" if debug else os.getenv("LOG_LEVEL", "INFO").upper()
    logger.remove()
    logger.add(sys.stderr, level=level)


def main(argv: List[str] | None = None) -> int:
    load_dotenv(Path.cwd() / ".env")
    args = build_parser().parse_args(argv)
    overrides = {k: v for k, v in vars(args).items() if v is not None}

    try:
        config = Config(**overrides)
    except ValueError as e:
        # pydantic 的 ValidationError 也是 ValueError
        setup_logging(False)
        logger.error(f"配置无效: {e}")
        return 1
    setup_logging(config.debug)

    try:
        # 在访问 DigiCert 之前校验主机列表
        parse_hosts(config.host)
    except InvalidHostList as e:
        logger.error(f"缺少必需的 --host 参数: {e}")
        return 1
    if not config.api_token.get_secret_value():
        logger.warning("未设置 DIGICERT_API_TOKEN，请求将被 DigiCert 拒绝")

    try:
        order_certificate(config)
    except CertOrderError as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
