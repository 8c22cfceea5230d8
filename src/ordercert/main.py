"""
证书下单流水线入口：校验连通性 -> 生成 CSR 与私钥 -> 提交订单。
"""

from loguru import logger

from .config import Config
from .csr.services import make_csr_and_key
from .digicert.client import DigicertClient
from .digicert.services import build_order, submit_order, view_product_list


def order_certificate(config: Config, client: DigicertClient | None = None) -> int:
    """
    执行一次完整的下单流程，每次调用只提交一个订单，不轮询订单状态。
    :param config: 运行配置。
    :param client: 可选的 DigiCert 客户端，未提供时按配置创建并在结束时关闭。
    :return: DigiCert 返回的请求 ID。
    :raises CertOrderError: 任一步骤失败。
    """
    owns_client = client is None
    if client is None:
        client = DigicertClient(config.client_config())
    try:
        # 先用产品列表验证令牌与连通性，避免生成密钥后才发现无法下单
        view_product_list(client)

        bundle = make_csr_and_key(config)
        if config.debug:
            print(f"{bundle.csr_pem}\n{bundle.private_key_pem}")

        order = build_order(
            bundle,
            organization_id=config.organization_id,
            validity_years=config.validity_years,
            server_platform_id=config.server_platform_id,
        )
        request_id = submit_order(client, order, config.product_name_id)
    finally:
        if owns_client:
            client.close()

    logger.info(f"已提交订单，请求 ID: {request_id}")
    return request_id
