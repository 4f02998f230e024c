import os
import ssl
import tempfile
from collections import namedtuple

KEY_SUFFIX = "-key.pem"
CERT_SUFFIX = "-crt.pem"
CHAIN_SUFFIX = "-chain.pem"

PEM_MARKERS = {
    "key": b"PRIVATE KEY-----",
    "cert": b"-----BEGIN CERTIFICATE-----",
    "chain": b"-----BEGIN CERTIFICATE-----",
}


class CertificateLoadError(Exception):
    """Raised when the key / certificate / chain trio cannot be turned into a TLS context.

    ``reason`` is one of ``not_found``, ``permission_denied``, ``malformed``
    or ``key_mismatch``.
    """

    def __init__(self, reason, path, cause):
        self.reason = reason
        self.path = path
        self.cause = cause
        where = f" ({path})" if path else ""
        super().__init__(f"{reason}{where}: {cause}")


CertificatePaths = namedtuple("CertificatePaths", ["key", "cert", "chain"])

CertificateBundle = namedtuple(
    "CertificateBundle", ["host_name", "paths", "ssl_context"]
)


def certificate_paths(cert_dir, host_name):
    return CertificatePaths(
        key=os.path.join(cert_dir, host_name + KEY_SUFFIX),
        cert=os.path.join(cert_dir, host_name + CERT_SUFFIX),
        chain=os.path.join(cert_dir, host_name + CHAIN_SUFFIX),
    )


def _read_pem(path, kind):
    try:
        with open(path, "rb") as f:
            data = f.read()
    except FileNotFoundError as e:
        raise CertificateLoadError("not_found", path, e) from e
    except PermissionError as e:
        raise CertificateLoadError("permission_denied", path, e) from e
    except OSError as e:
        raise CertificateLoadError("malformed", path, e) from e

    if PEM_MARKERS[kind] not in data:
        cause = ValueError(f"no PEM {kind} block found")
        raise CertificateLoadError("malformed", path, cause)
    return data


def _build_context(key_path, fullchain):
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    context.set_alpn_protocols(["http/1.1"])

    # load_cert_chain only takes file names, so the leaf + intermediates go
    # through a private temp file that is removed right after loading.
    fd, fullchain_path = tempfile.mkstemp(suffix=".pem")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(fullchain)
        # an empty passphrase makes encrypted keys fail instead of prompting on the tty
        context.load_cert_chain(certfile=fullchain_path, keyfile=key_path, password=b"")
    finally:
        os.remove(fullchain_path)
    return context


def load_certificate_bundle(cert_dir, host_name):
    """Load ``<host>-key.pem``, ``<host>-crt.pem`` and ``<host>-chain.pem`` from cert_dir.

    Returns a CertificateBundle whose ``ssl_context`` presents the leaf
    certificate followed by the chain. Any problem raises CertificateLoadError.
    """
    paths = certificate_paths(cert_dir, host_name)

    _read_pem(paths.key, "key")
    cert = _read_pem(paths.cert, "cert")
    chain = _read_pem(paths.chain, "chain")

    if not cert.endswith(b"\n"):
        cert += b"\n"

    try:
        context = _build_context(paths.key, cert + chain)
    except ssl.SSLError as e:
        if getattr(e, "reason", None) == "KEY_VALUES_MISMATCH" or "key values mismatch" in str(e):
            raise CertificateLoadError("key_mismatch", paths.key, e) from e
        raise CertificateLoadError("malformed", None, e) from e

    return CertificateBundle(host_name=host_name, paths=paths, ssl_context=context)
