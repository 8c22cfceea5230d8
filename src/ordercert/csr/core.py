"""
密钥生成、CSR 构造与 PEM 编码的核心逻辑实现。
包括按算法选择生成密钥、拆分主机列表、构造并回读 CSR、私钥 PEM 编码以及签名哈希映射。
"""

import ipaddress
from typing import List, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
)
from cryptography.x509.oid import NameOID, SignatureAlgorithmOID
from loguru import logger

from ..digicert.schemas import SignatureHash
from ..errors import (
    CSRConstructionFailed,
    CSRParseFailed,
    InvalidHostList,
    KeyEncodingFailed,
    KeyGenerationFailed,
    UnknownKeyType,
    UnsupportedAlgorithm,
)
from .schemas import KeyAlgorithm, KeyPair, Subject

DEFAULT_RSA_BITS = 2048
RSA_PUBLIC_EXPONENT = 65537

# 曲线选择器 -> (算法标签, 曲线)
_CURVE_SELECTORS = {
    "P256": (KeyAlgorithm.ECDSA_P256, ec.SECP256R1),
    "P384": (KeyAlgorithm.ECDSA_P384, ec.SECP384R1),
}

_HASHES = {
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}

# 未指定哈希时各算法默认使用的签名哈希
_DEFAULT_HASH = {
    KeyAlgorithm.RSA: "sha256",
    KeyAlgorithm.ECDSA_P256: "sha256",
    KeyAlgorithm.ECDSA_P384: "sha384",
}

_SHA384_OIDS = {SignatureAlgorithmOID.RSA_WITH_SHA384, SignatureAlgorithmOID.ECDSA_WITH_SHA384}
_SHA512_OIDS = {SignatureAlgorithmOID.RSA_WITH_SHA512, SignatureAlgorithmOID.ECDSA_WITH_SHA512}


def generate_key_pair(curve: str = "", rsa_bits: int = DEFAULT_RSA_BITS) -> KeyPair:
    """
    按选择器生成新的密钥对，随机源为操作系统的安全随机数生成器。
    :param curve: "" 表示 RSA，"P256" / "P384" 表示对应的椭圆曲线。
    :param rsa_bits: RSA 模数位数，仅在 curve 为空时生效。
    :return: 生成的 KeyPair。
    :raises UnsupportedAlgorithm: 选择器不在支持范围内。
    :raises KeyGenerationFailed: 底层生成失败。
    """
    if curve == "":
        try:
            private_key = rsa.generate_private_key(
                public_exponent=RSA_PUBLIC_EXPONENT, key_size=rsa_bits
            )
        except (ValueError, TypeError) as e:
            raise KeyGenerationFailed(f"生成 {rsa_bits} 位 RSA 私钥失败") from e
        logger.debug(f"已生成 {rsa_bits} 位 RSA 私钥")
        return KeyPair(algorithm=KeyAlgorithm.RSA, private_key=private_key)

    if curve not in _CURVE_SELECTORS:
        raise UnsupportedAlgorithm(f"不支持的椭圆曲线: {curve!r}，可选值为 P256、P384")

    algorithm, curve_cls = _CURVE_SELECTORS[curve]
    try:
        private_key = ec.generate_private_key(curve_cls())
    except ValueError as e:
        raise KeyGenerationFailed(f"生成 {curve} 椭圆曲线私钥失败") from e
    logger.debug(f"已生成 {curve} 椭圆曲线私钥")
    return KeyPair(algorithm=algorithm, private_key=private_key)


def parse_hosts(host: str) -> List[str]:
    """
    将逗号分隔的主机列表拆分为主机名/IP 列表，去除首尾空白并丢弃空项。
    :raises InvalidHostList: 拆分后没有任何可用主机。
    """
    hosts = [h.strip() for h in host.split(",")]
    hosts = [h for h in hosts if h]
    if not hosts:
        raise InvalidHostList(f"主机列表为空: {host!r}")
    return hosts


def classify_hosts(
    hosts: List[str],
) -> Tuple[List[str], List[ipaddress.IPv4Address | ipaddress.IPv6Address]]:
    """将主机逐个归类为 DNS 名称或 IP 地址，保持原有顺序。"""
    dns_names: List[str] = []
    ip_addresses: List[ipaddress.IPv4Address | ipaddress.IPv6Address] = []
    for h in hosts:
        try:
            ip_addresses.append(ipaddress.ip_address(h))
        except ValueError:
            dns_names.append(h)
    return dns_names, ip_addresses


def _build_name(subject: Subject) -> x509.Name:
    attributes = [
        (NameOID.COUNTRY_NAME, subject.country),
        (NameOID.STATE_OR_PROVINCE_NAME, subject.province),
        (NameOID.LOCALITY_NAME, subject.locality),
        (NameOID.ORGANIZATION_NAME, subject.organization),
        (NameOID.ORGANIZATIONAL_UNIT_NAME, subject.organizational_unit),
        (NameOID.COMMON_NAME, subject.common_name),
    ]
    return x509.Name([x509.NameAttribute(oid, value) for oid, value in attributes if value])


def build_csr(
    key_pair: KeyPair,
    subject: Subject,
    hosts: List[str],
    hash_name: str | None = None,
) -> x509.CertificateSigningRequest:
    """
    构造并签名 CSR，编码为 DER 后再解析回来，确保产物可以完整往返。
    CommonName 总是取 hosts 的第一项原样填写，无论它是域名还是 IP。
    :param key_pair: 用于签名的密钥对。
    :param subject: 主题模板，其中 common_name 会被 hosts[0] 覆盖。
    :param hosts: 已拆分的主机列表。
    :param hash_name: "sha256" / "sha384" / "sha512"，为空时按密钥算法选择默认值。
    :return: 从 DER 解析回来的 CSR 对象。
    :raises CSRConstructionFailed: 构造、签名或编码失败（此时不会尝试解析）。
    :raises CSRParseFailed: 编码结果无法解析或签名校验失败。
    """
    if not hosts:
        raise InvalidHostList("主机列表为空")

    hash_name = hash_name or _DEFAULT_HASH[key_pair.algorithm]
    if hash_name not in _HASHES:
        raise CSRConstructionFailed(f"不支持的签名哈希: {hash_name!r}")

    subject = subject.model_copy(update={"common_name": hosts[0]})
    dns_names, ip_addresses = classify_hosts(hosts)
    try:
        general_names: List[x509.GeneralName] = [x509.DNSName(n) for n in dns_names]
        general_names.extend(x509.IPAddress(ip) for ip in ip_addresses)
        builder = x509.CertificateSigningRequestBuilder().subject_name(_build_name(subject))
        builder = builder.add_extension(x509.SubjectAlternativeName(general_names), critical=False)
        der = builder.sign(key_pair.private_key, _HASHES[hash_name]()).public_bytes(Encoding.DER)
    except (ValueError, TypeError, UnicodeError) as e:
        raise CSRConstructionFailed("生成 CSR 失败") from e

    try:
        csr = x509.load_der_x509_csr(der)
    except ValueError as e:
        raise CSRParseFailed("解析 CSR 失败") from e
    if not csr.is_signature_valid:
        raise CSRParseFailed("CSR 签名校验失败")

    logger.info(
        f"已生成 CSR: CN={subject.common_name}, DNS={dns_names}, IP={[str(ip) for ip in ip_addresses]}"
    )
    return csr


def get_common_name(csr: x509.CertificateSigningRequest) -> str:
    attrs = csr.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    return str(attrs[0].value) if attrs else ""


def get_organizational_units(csr: x509.CertificateSigningRequest) -> List[str]:
    return [str(a.value) for a in csr.subject.get_attributes_for_oid(NameOID.ORGANIZATIONAL_UNIT_NAME)]


def get_subject_alt_names(
    csr: x509.CertificateSigningRequest,
) -> Tuple[List[str], List[ipaddress.IPv4Address | ipaddress.IPv6Address]]:
    """返回 CSR 中 SAN 扩展里的 (DNS 名称, IP 地址)，没有该扩展时均为空列表。"""
    try:
        san = csr.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    except x509.ExtensionNotFound:
        return [], []
    return san.get_values_for_type(x509.DNSName), san.get_values_for_type(x509.IPAddress)


def encode_csr_pem(csr: x509.CertificateSigningRequest) -> str:
    """编码为 "CERTIFICATE REQUEST" PEM 块。"""
    return csr.public_bytes(Encoding.PEM).decode("ascii")


def encode_private_key_pem(key_pair: KeyPair) -> str:
    """
    按算法选择私钥的 PEM 编码：
    RSA 使用 PKCS#1（"RSA PRIVATE KEY"），椭圆曲线使用 SEC1（"EC PRIVATE KEY"），均不加密。
    :raises KeyEncodingFailed: 椭圆曲线私钥序列化失败。
    :raises UnknownKeyType: 算法标签与私钥类型不一致（不应出现）。
    """
    key = key_pair.private_key
    if key_pair.algorithm is KeyAlgorithm.RSA and isinstance(key, rsa.RSAPrivateKey):
        pem = key.private_bytes(Encoding.PEM, PrivateFormat.TraditionalOpenSSL, NoEncryption())
        return pem.decode("ascii")
    if key_pair.algorithm in (KeyAlgorithm.ECDSA_P256, KeyAlgorithm.ECDSA_P384) and isinstance(
        key, ec.EllipticCurvePrivateKey
    ):
        try:
            pem = key.private_bytes(Encoding.PEM, PrivateFormat.TraditionalOpenSSL, NoEncryption())
        except ValueError as e:
            raise KeyEncodingFailed("序列化 ECDSA 私钥失败") from e
        return pem.decode("ascii")
    raise UnknownKeyType(f"未知的私钥类型: {key_pair.algorithm} / {type(key).__name__}")


def signature_hash_for(oid: x509.ObjectIdentifier | None) -> SignatureHash:
    """
    将 CSR 的签名算法映射为 DigiCert 订单的 signature_hash。
    SHA-384 系列 -> "sha384"，SHA-512 系列 -> "sha512"，其余（含未设置）-> "sha256"。
    """
    if oid in _SHA384_OIDS:
        return "sha384"
    if oid in _SHA512_OIDS:
        return "sha512"
    return "sha256"

