"""
密钥与证书签名请求（CSR）相关的数据模型定义。
"""

from __future__ import annotations

from enum import Enum
from typing import Union

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..digicert.schemas import SignatureHash


class KeyAlgorithm(str, Enum):
    RSA = "RSA"
    ECDSA_P256 = "ECDSA-P256"
    ECDSA_P384 = "ECDSA-P384"


_EC_CURVES = {
    KeyAlgorithm.ECDSA_P256: ec.SECP256R1,
    KeyAlgorithm.ECDSA_P384: ec.SECP384R1,
}


class KeyPair(BaseModel):
    """
    一次调用内生成的私钥，算法标签与私钥类型必须一致。
    公钥由私钥导出，不单独保存。
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    algorithm: KeyAlgorithm
    private_key: Union[rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey]

    @model_validator(mode="after")
    def check_payload(self) -> "KeyPair":
        if self.algorithm is KeyAlgorithm.RSA:
            if not isinstance(self.private_key, rsa.RSAPrivateKey):
                raise ValueError("RSA 标签必须携带 RSA 私钥")
        else:
            curve = _EC_CURVES[self.algorithm]
            if not isinstance(self.private_key, ec.EllipticCurvePrivateKey) or not isinstance(
                self.private_key.curve, curve
            ):
                raise ValueError(f"{self.algorithm.value} 标签必须携带 {curve.name} 私钥")
        return self

    def public_key(self):
        return self.private_key.public_key()


class Subject(BaseModel):
    """CSR 的主题字段，空字符串的属性在编码时省略。"""

    common_name: str
    organization: str = ""
    organizational_unit: str = ""
    country: str = ""
    province: str = ""
    locality: str = ""


class CSRBundle(BaseModel):
    """
    一次生成的产物：解析回来的 CSR、PEM 文本以及映射出的签名哈希。
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    csr: x509.CertificateSigningRequest
    csr_pem: str
    private_key_pem: str = Field(repr=False)
    signature_hash: SignatureHash
