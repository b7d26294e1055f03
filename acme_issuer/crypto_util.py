"""acme-issuer crypto utility functions."""
import logging
import re
import typing
from typing import List
from typing import Sequence

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.hazmat.primitives.serialization import NoEncryption
from cryptography.hazmat.primitives.serialization import PrivateFormat
from cryptography.hazmat.primitives.serialization import PublicFormat
import josepy as jose

from acme import crypto_util as acme_crypto_util
from acme_issuer import errors
from acme_issuer.achallenges import CertificateBundle
from acme_issuer.achallenges import KeyPair

logger = logging.getLogger(__name__)

# Finds one CERTIFICATE stricttextualmsg according to rfc7468#section-3.
# Does not validate the base64text - use x509.load_pem_x509_certificate.
CERT_PEM_REGEX = re.compile(
    b"""-----BEGIN CERTIFICATE-----\r?
.+?\r?
-----END CERTIFICATE-----\r?
""",
    re.DOTALL # DOTALL (/s) because the base64text may include newlines
)


def make_key(bits: int = 2048) -> bytes:
    """Generate PEM encoded RSA key.

    :param int bits: Number of bits, at least 2048.

    :returns: new RSA key in PEM form with specified number of bits
    :rtype: bytes

    """
    if bits < 2048:
        raise errors.Error("Unsupported RSA key length: {}".format(bits))
    key = rsa.generate_private_key(public_exponent=65537, key_size=bits)
    return key.private_bytes(
        encoding=Encoding.PEM,
        format=PrivateFormat.PKCS8,
        encryption_algorithm=NoEncryption()
    )


def make_key_pair(bits: int = 2048) -> KeyPair:
    """Generate a fresh `.KeyPair`."""
    return load_key_pair(make_key(bits))


def load_key_pair(private_key_pem: bytes) -> KeyPair:
    """Build a `.KeyPair` from a PEM private key.

    :param bytes private_key_pem: Private key file contents (PEM)

    :raises ValueError: if the data is not a usable private key

    """
    key = serialization.load_pem_private_key(private_key_pem, password=None)
    public_pem = key.public_key().public_bytes(
        encoding=Encoding.PEM, format=PublicFormat.SubjectPublicKeyInfo)
    return KeyPair(private_key=private_key_pem, public_key=public_pem)


def load_jwk(private_key_pem: bytes) -> jose.JWK:
    """Load an account key for signing ACME requests."""
    key = serialization.load_pem_private_key(private_key_pem, password=None)
    if not isinstance(key, rsa.RSAPrivateKey):
        raise errors.Error("Only RSA account keys are supported.")
    return jose.JWKRSA(key=key)


def make_csr(key_pair: KeyPair, domains: Sequence[str]) -> bytes:
    """Generate a PEM CSR for ``domains`` signed with ``key_pair``."""
    return acme_crypto_util.make_csr(key_pair.private_key, list(domains))


def bundle_from_fullchain(fullchain_pem: str) -> CertificateBundle:
    """Split fullchain_pem into a `.CertificateBundle`.

    :param str fullchain_pem: concatenated cert + chain

    :raises errors.CertificateRequestFailed: If no certificate is found.

    """
    certs = CERT_PEM_REGEX.findall(fullchain_pem.encode())
    if not certs:
        raise errors.CertificateRequestFailed(
            "failed to parse fullchain: no certificate found")

    # Re-encode each certificate, with the effect of normalizing any
    # encoding variations (e.g. CRLF, whitespace).
    normalized: List[str] = []
    for cert_pem in certs:
        cert = x509.load_pem_x509_certificate(cert_pem)
        normalized.append(cert.public_bytes(Encoding.PEM).decode())
    return CertificateBundle(certificates=tuple(normalized))


def get_names_from_cert(cert_pem: str) -> List[str]:
    """Get the first Common Name followed by all DNS Subject Alternative Names.

    :param str cert_pem: Certificate (PEM).

    :rtype: `list` of `str`

    """
    cert = x509.load_pem_x509_certificate(cert_pem.encode())
    # We know these are always `str` because `bytes` is only possible for
    # other OIDs.
    cns = [
        typing.cast(str, c.value)
        for c in cert.subject.get_attributes_for_oid(x509.NameOID.COMMON_NAME)
    ]
    try:
        san_ext = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        dns_names = []
    else:
        dns_names = san_ext.value.get_values_for_type(x509.DNSName)

    if not cns:
        return dns_names
    return [cns[0]] + [name for name in dns_names if name != cns[0]]
