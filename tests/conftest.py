import datetime
import ipaddress

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

HOST = "spa.test"


def _key():
    return ec.generate_private_key(ec.SECP256R1())


def _name(cn):
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])


def _cert(subject, subject_key, issuer, issuer_key, ca, sans=None):
    now = datetime.datetime.now(datetime.timezone.utc)
    builder = (
        x509.CertificateBuilder()
        .subject_name(_name(subject))
        .issuer_name(_name(issuer))
        .public_key(subject_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .add_extension(
            x509.SubjectKeyIdentifier.from_public_key(subject_key.public_key()), critical=False
        )
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer_key.public_key()),
            critical=False,
        )
    )
    if ca:
        builder = builder.add_extension(
            x509.KeyUsage(
                digital_signature=True, content_commitment=False, key_encipherment=False,
                data_encipherment=False, key_agreement=False, key_cert_sign=True,
                crl_sign=True, encipher_only=False, decipher_only=False,
            ),
            critical=True,
        )
    if sans:
        builder = builder.add_extension(x509.SubjectAlternativeName(sans), critical=False)
    return builder.sign(issuer_key, hashes.SHA256())


def _pem_cert(cert):
    return cert.public_bytes(serialization.Encoding.PEM)


def _pem_key(key):
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )


@pytest.fixture(scope="session")
def pki():
    """Root CA -> intermediate -> leaf for HOST, localhost and 127.0.0.1."""
    root_key = _key()
    root = _cert("Test Root", root_key, "Test Root", root_key, ca=True)

    inter_key = _key()
    inter = _cert("Test Intermediate", inter_key, "Test Root", root_key, ca=True)

    leaf_key = _key()
    leaf = _cert(
        HOST, leaf_key, "Test Intermediate", inter_key, ca=False,
        sans=[
            x509.DNSName(HOST),
            x509.DNSName("localhost"),
            x509.IPAddress(ipaddress.ip_address("127.0.0.1")),
        ],
    )

    return {
        "root_pem": _pem_cert(root),
        "chain_pem": _pem_cert(inter),
        "leaf_pem": _pem_cert(leaf),
        "key_pem": _pem_key(leaf_key),
        "other_key_pem": _pem_key(_key()),
    }


@pytest.fixture
def cert_dir(tmp_path, pki):
    d = tmp_path / "certs"
    d.mkdir()
    (d / f"{HOST}-key.pem").write_bytes(pki["key_pem"])
    (d / f"{HOST}-crt.pem").write_bytes(pki["leaf_pem"])
    (d / f"{HOST}-chain.pem").write_bytes(pki["chain_pem"])
    return d


@pytest.fixture
def web_root(tmp_path):
    root = tmp_path / "build" / "web"
    (root / "assets").mkdir(parents=True)
    (root / "index.html").write_bytes(b"APP")
    (root / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\nfake-image-bytes")
    (root / "assets" / "main.js").write_bytes(b"console.log('main');")
    (root / "main.dart.wasm").write_bytes(b"\x00asm\x01\x00\x00\x00")
    (tmp_path / "build" / "secret.txt").write_bytes(b"TOP SECRET")
    (tmp_path / "secret.txt").write_bytes(b"TOP SECRET")
    return root
