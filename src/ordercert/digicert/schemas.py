"""
文件功能：
    定义与 DigiCert CertCentral REST API 交互的数据模型（Pydantic）。
    字段名与线上 JSON 保持一致，参见 https://www.digicert.com/services/v2/documentation/

公开接口：
    - APIError / APIErrors: 错误响应体 {"errors": [{"code", "message"}]}
    - Product / ProductList: GET /product
    - Organization / OrganizationList: GET /organization
    - Order: POST /order/certificate/{product_name_id} 请求体
    - OrderResult: 下单成功（201）后的响应体
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

SignatureHash = Literal["sha256", "sha384", "sha512"]

# 服务器平台 ID 45 对应 nginx，即标准 PEM 格式交付
STANDARD_PEM_SERVER_PLATFORM_ID = 45


class APIError(BaseModel):
    code: str
    message: str


class APIErrors(BaseModel):
    """DigiCert 返回的错误列表。"""

    errors: List[APIError]

    def __str__(self) -> str:
        if len(self.errors) == 1:
            return f"{self.errors[0].code} {self.errors[0].message}"
        return " ".join(
            f"{i}) {e.code} {e.message}" for i, e in enumerate(self.errors)
        )


class Product(BaseModel):
    group_name: str = ""
    name_id: str
    name: str = ""
    type: str = ""


class ProductList(BaseModel):
    products: List[Product] = Field(default_factory=list)


class OrganizationContainer(BaseModel):
    id: int
    name: str = ""
    is_active: bool = False


class VerifiedUser(BaseModel):
    id: int
    first_name: str = ""
    last_name: str = ""


class OrganizationValidation(BaseModel):
    """组织已完成的验证（如 ov、ev），附带验证有效期与经过验证的联系人。"""

    type: str
    name: str = ""
    description: str = ""
    date_created: datetime | None = None
    validated_until: datetime | None = None
    status: str = ""
    verified_users: List[VerifiedUser] = Field(default_factory=list)


class EvApprover(BaseModel):
    id: int
    first_name: str = ""
    last_name: str = ""


class Organization(BaseModel):
    """CertCentral 账户下的组织信息，未建模的字段直接忽略。"""

    model_config = ConfigDict(extra="ignore")

    id: int
    status: str = ""
    name: str = ""
    assumed_name: str | None = None
    display_name: str | None = None
    is_active: bool | None = None
    address: str = ""
    address2: str | None = None
    zip: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    telephone: str | None = None
    container: OrganizationContainer | None = None
    validations: List[OrganizationValidation] = Field(default_factory=list)
    ev_approvers: List[EvApprover] = Field(default_factory=list)


class OrganizationList(BaseModel):
    organizations: List[Organization] = Field(default_factory=list)


class ServerPlatform(BaseModel):
    id: int = STANDARD_PEM_SERVER_PLATFORM_ID


class OrderCertificate(BaseModel):
    common_name: str
    dns_names: List[str] = Field(default_factory=list)
    csr: str = Field(description="PEM 格式的 CSR")
    organization_units: List[str] | None = None
    server_platform: ServerPlatform = Field(default_factory=ServerPlatform)
    signature_hash: SignatureHash
    profile_option: str | None = None


class OrderOrganization(BaseModel):
    id: int


class Order(BaseModel):
    """
    提交给 DigiCert 的证书订单。
    可选字段为 None 时序列化会省略，见 to_json()。
    """

    certificate: OrderCertificate
    organization: OrderOrganization
    validity_years: int = Field(ge=1, le=3, description="证书有效期（年）：1、2 或 3")
    custom_expiration_date: str | None = None
    comments: str | None = None
    disable_renewal_notifications: bool | None = None
    renewal_of_order_id: int | None = None
    payment_method: str | None = None

    def to_json(self) -> bytes:
        return self.model_dump_json(exclude_none=True).encode("utf-8")


class OrderRequest(BaseModel):
    id: int
    status: str = ""


class OrderResult(BaseModel):
    id: int
    requests: List[OrderRequest] = Field(default_factory=list)
