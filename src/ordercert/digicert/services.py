"""
DigiCert API 的业务逻辑层：产品列表、组织列表与证书下单。
"""

from typing import List

from loguru import logger

from ..csr import core as csr_core
from ..csr.schemas import CSRBundle
from ..errors import AmbiguousOrderResponse, CertOrderError, OrderRejected
from .client import DigicertClient, read_json, status_line
from .schemas import (
    STANDARD_PEM_SERVER_PLATFORM_ID,
    Order,
    OrderCertificate,
    OrderOrganization,
    OrderResult,
    Organization,
    OrganizationList,
    Product,
    ProductList,
    ServerPlatform,
)


def view_product_list(client: DigicertClient) -> List[Product]:
    """
    获取账户可订购的产品列表，也用于校验 API 令牌与网络连通性。
    """
    try:
        response = client.do("GET", "/product")
        products = read_json(response, ProductList).products
    except CertOrderError as e:
        raise e.with_context("获取 DigiCert 产品列表失败")
    logger.debug(f"DigiCert 可订购产品: {[p.name_id for p in products]}")
    return products


def list_organizations(client: DigicertClient) -> List[Organization]:
    try:
        response = client.do("GET", "/organization")
        return read_json(response, OrganizationList).organizations
    except CertOrderError as e:
        raise e.with_context("获取 DigiCert 组织列表失败")


def build_order(
    bundle: CSRBundle,
    organization_id: int,
    validity_years: int,
    server_platform_id: int = STANDARD_PEM_SERVER_PLATFORM_ID,
) -> Order:
    """
    将解析后的 CSR 映射为 DigiCert 订单。
    通用名、DNS 名称与组织单位均取自 CSR 本身，签名哈希取自 CSR 的签名算法。
    """
    dns_names, _ = csr_core.get_subject_alt_names(bundle.csr)
    return Order(
        certificate=OrderCertificate(
            common_name=csr_core.get_common_name(bundle.csr),
            dns_names=dns_names,
            csr=bundle.csr_pem,
            organization_units=csr_core.get_organizational_units(bundle.csr) or None,
            server_platform=ServerPlatform(id=server_platform_id),
            signature_hash=bundle.signature_hash,
        ),
        organization=OrderOrganization(id=organization_id),
        validity_years=validity_years,
    )


def submit_order(client: DigicertClient, order: Order, product_name_id: str) -> int:
    """
    向 DigiCert 提交一个证书订单。
    每次调用都会产生一个（可能收费的）订单，调用方不得在未去重的情况下自动重试。
    :param client: DigiCert 客户端。
    :param order: 待提交的订单。
    :param product_name_id: 产品标识，如 "ssl"，可通过 view_product_list() 查询。
    :return: 订单中唯一请求的 ID。
    :raises OrderRejected: 响应状态码不是 201。
    :raises AmbiguousOrderResponse: 响应中的请求数量不为 1。
    """
    try:
        response = client.do("POST", f"/order/certificate/{product_name_id}", body=order.to_json())
        if response.status_code != 201:
            line = status_line(response)
            response.close()
            raise OrderRejected(line)
        result = read_json(response, OrderResult)
        if len(result.requests) != 1:
            raise AmbiguousOrderResponse(len(result.requests))
    except CertOrderError as e:
        raise e.with_context("提交 DigiCert 订单失败")

    request_id = result.requests[0].id
    logger.info(
        f"DigiCert 订单 {result.id} 已创建，请求 ID: {request_id}，状态: {result.requests[0].status}"
    )
    return request_id
