"""
测试主机列表拆分、CSR 构造与 DER 往返。
"""

import ipaddress
from unittest.mock import patch

import pytest
from cryptography import x509
from cryptography.x509.oid import NameOID, SignatureAlgorithmOID

from src.ordercert.csr import core
from src.ordercert.csr.schemas import Subject
from src.ordercert.errors import CSRConstructionFailed, CSRParseFailed, InvalidHostList


@pytest.fixture(scope="module")
def ec_key_pair():
    return core.generate_key_pair("P256")


@pytest.fixture
def subject():
    return Subject(
        common_name="ignored",
        organization="Mozilla Corporation",
        organizational_unit="Cloud Services",
        country="US",
        province="California",
        locality="Mountain View",
    )


def _attr(csr, oid):
    return [a.value for a in csr.subject.get_attributes_for_oid(oid)]


def test_parse_hosts_strips_and_drops_empty():
    assert core.parse_hosts("a.example.com, 10.0.0.1,,b.example.com ") == [
        "a.example.com",
        "10.0.0.1",
        "b.example.com",
    ]


@pytest.mark.parametrize("host", ["", "   ", ",", " , ,"])
def test_parse_hosts_empty(host):
    """没有可用主机时在构造 CSR 之前就拒绝"""
    with pytest.raises(InvalidHostList):
        core.parse_hosts(host)


def test_classify_hosts():
    """每个主机恰好归入 DNS 或 IP 之一，并保持顺序"""
    hosts = ["10.0.0.5", "example.com", "2001:db8::1", "www.example.com", "192.168.1.1"]
    dns_names, ips = core.classify_hosts(hosts)
    assert dns_names == ["example.com", "www.example.com"]
    assert ips == [
        ipaddress.ip_address("10.0.0.5"),
        ipaddress.ip_address("2001:db8::1"),
        ipaddress.ip_address("192.168.1.1"),
    ]
    assert len(dns_names) + len(ips) == len(hosts)


def test_build_csr_ip_first_host(ec_key_pair, subject):
    """第一个主机是 IP 时通用名仍原样使用它"""
    csr = core.build_csr(ec_key_pair, subject, core.parse_hosts("10.0.0.5,example.com"))

    assert core.get_common_name(csr) == "10.0.0.5"
    dns_names, ips = core.get_subject_alt_names(csr)
    assert dns_names == ["example.com"]
    assert ips == [ipaddress.ip_address("10.0.0.5")]


def test_build_csr_round_trip_fields(ec_key_pair, subject):
    """往返后主题与 SAN 与输入一致，签名有效"""
    hosts = ["example.com", "www.example.com", "::1"]
    csr = core.build_csr(ec_key_pair, subject, hosts)

    assert csr.is_signature_valid
    assert _attr(csr, NameOID.COMMON_NAME) == ["example.com"]
    assert _attr(csr, NameOID.ORGANIZATION_NAME) == ["Mozilla Corporation"]
    assert _attr(csr, NameOID.ORGANIZATIONAL_UNIT_NAME) == ["Cloud Services"]
    assert _attr(csr, NameOID.COUNTRY_NAME) == ["US"]
    assert _attr(csr, NameOID.STATE_OR_PROVINCE_NAME) == ["California"]
    assert _attr(csr, NameOID.LOCALITY_NAME) == ["Mountain View"]
    assert core.get_subject_alt_names(csr) == (
        ["example.com", "www.example.com"],
        [ipaddress.ip_address("::1")],
    )
    assert core.get_organizational_units(csr) == ["Cloud Services"]


def test_build_csr_omits_empty_subject_fields(ec_key_pair):
    csr = core.build_csr(ec_key_pair, Subject(common_name="x"), ["example.org"])
    assert [a.oid for a in csr.subject] == [NameOID.COMMON_NAME]


@pytest.mark.parametrize(
    "curve, expected_oid",
    [
        ("", SignatureAlgorithmOID.RSA_WITH_SHA256),
        ("P256", SignatureAlgorithmOID.ECDSA_WITH_SHA256),
        ("P384", SignatureAlgorithmOID.ECDSA_WITH_SHA384),
    ],
)
def test_build_csr_default_hash(curve, expected_oid, subject):
    """默认签名哈希跟随密钥算法"""
    csr = core.build_csr(core.generate_key_pair(curve), subject, ["example.com"])
    assert csr.signature_algorithm_oid == expected_oid


def test_build_csr_explicit_hash(ec_key_pair, subject):
    csr = core.build_csr(ec_key_pair, subject, ["example.com"], hash_name="sha512")
    assert csr.signature_algorithm_oid == SignatureAlgorithmOID.ECDSA_WITH_SHA512


def test_build_csr_unknown_hash(ec_key_pair, subject):
    with pytest.raises(CSRConstructionFailed):
        core.build_csr(ec_key_pair, subject, ["example.com"], hash_name="md5")


def test_build_csr_invalid_country(ec_key_pair, subject):
    """国家代码必须为两位，否则构造失败"""
    bad = subject.model_copy(update={"country": "USA"})
    with pytest.raises(CSRConstructionFailed):
        core.build_csr(ec_key_pair, bad, ["example.com"])


def test_build_csr_encoding_failure_skips_parse(ec_key_pair, subject):
    """签名/编码失败时不会尝试解析"""
    with patch.object(
        x509.CertificateSigningRequestBuilder, "sign", side_effect=ValueError("boom")
    ), patch.object(core.x509, "load_der_x509_csr") as mock_load:
        with pytest.raises(CSRConstructionFailed) as exc_info:
            core.build_csr(ec_key_pair, subject, ["example.com"])
    mock_load.assert_not_called()
    assert "boom" in str(exc_info.value)


def test_build_csr_parse_failure(ec_key_pair, subject):
    with patch.object(core.x509, "load_der_x509_csr", side_effect=ValueError("bad der")):
        with pytest.raises(CSRParseFailed):
            core.build_csr(ec_key_pair, subject, ["example.com"])


def test_build_csr_empty_hosts(ec_key_pair, subject):
    with pytest.raises(InvalidHostList):
        core.build_csr(ec_key_pair, subject, [])
