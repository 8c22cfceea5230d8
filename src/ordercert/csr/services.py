"""
CSR 生成的业务逻辑层。
此模块将 core 中的密钥生成、CSR 构造与 PEM 编码串联起来，供下单流程调用。
"""

from ..config import Config
from ..errors import CertOrderError
from . import core
from .schemas import CSRBundle, Subject


def subject_from_config(config: Config, common_name: str) -> Subject:
    return Subject(
        common_name=common_name,
        organization=config.org,
        organizational_unit=config.ou,
        country=config.country,
        province=config.state,
        locality=config.locality,
    )


def make_csr_and_key(config: Config) -> CSRBundle:
    """
    生成私钥与 CSR。
    :param config: 提供主机列表、主题字段与密钥算法的配置。
    :return: 包含 CSR、CSR PEM、私钥 PEM 与签名哈希的 CSRBundle。
    :raises CertOrderError: 任一步骤失败，错误类型保持不变并附加上下文。
    """
    try:
        # 主机列表必须在生成密钥之前校验
        hosts = core.parse_hosts(config.host)
        key_pair = core.generate_key_pair(config.ecdsa_curve, config.rsa_bits)
        csr = core.build_csr(
            key_pair,
            subject_from_config(config, hosts[0]),
            hosts,
            hash_name=config.signature_hash,
        )
        csr_pem = core.encode_csr_pem(csr)
        key_pem = core.encode_private_key_pem(key_pair)
    except CertOrderError as e:
        raise e.with_context("生成 CSR 与私钥失败")

    return CSRBundle(
        csr=csr,
        csr_pem=csr_pem,
        private_key_pem=key_pem,
        signature_hash=core.signature_hash_for(csr.signature_algorithm_oid),
    )
