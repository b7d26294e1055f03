"""Test utilities."""
import argparse
import datetime
import functools
import logging
import os
import shutil
import tempfile
from typing import Any
from typing import List
from typing import Optional
import unittest

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
import josepy as jose

from acme_issuer import configuration
from acme_issuer import crypto_util
from acme_issuer._internal import constants


def make_rsa_key_pem(seed: int = 0) -> bytes:
    """Generate a 2048 bit RSA key, the same one for each ``seed``."""
    return _make_rsa_key_pem(seed)


@functools.lru_cache(maxsize=None)
def _make_rsa_key_pem(seed: int) -> bytes:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption())


def load_jwk(seed: int = 0) -> jose.JWKRSA:
    """Account key for tests."""
    return crypto_util.load_jwk(make_rsa_key_pem(seed))


def make_self_signed_cert(names: List[str], key_pem: Optional[bytes] = None,
                          common_name: bool = True) -> str:
    """Return the PEM of a self-signed certificate for ``names``.

    The common name is set to the first name unless ``common_name`` is
    false; every name is listed as a DNS subject alternative name.

    """
    key = serialization.load_pem_private_key(key_pem or make_rsa_key_pem(1), password=None)
    subject = x509.Name([x509.NameAttribute(x509.NameOID.COMMON_NAME, names[0])]
                        if common_name else [])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = x509.CertificateBuilder(
        issuer_name=subject,
        subject_name=subject,
        public_key=key.public_key(),
        serial_number=x509.random_serial_number(),
        not_valid_before=now - datetime.timedelta(days=1),
        not_valid_after=now + datetime.timedelta(days=90),
    ).add_extension(
        x509.SubjectAlternativeName([x509.DNSName(name) for name in names]),
        critical=False,
    ).sign(
        private_key=key,
        algorithm=hashes.SHA256(),
    )
    return cert.public_bytes(serialization.Encoding.PEM).decode()


def make_namespace(tempdir: str, **kwargs: Any) -> argparse.Namespace:
    """Namespace with the CLI defaults, rooted in ``tempdir``."""
    values = dict(constants.CLI_DEFAULTS)
    values.update(
        verb="issue",
        domains=["example.com"],
        path=os.path.join(tempdir, "docroot"),
        config_dir=os.path.join(tempdir, "config"),
        logs_dir=os.path.join(tempdir, "logs"),
    )
    values.update(kwargs)
    return argparse.Namespace(**values)


class TempDirTestCase(unittest.TestCase):
    """Base test class which sets up and tears down a temporary directory"""

    def setUp(self) -> None:
        """Execute before test"""
        self.tempdir = tempfile.mkdtemp()

    def tearDown(self) -> None:
        """Execute after test"""
        # Cleanup opened resources after a test. This is usually done through atexit handlers in
        # acme-issuer, but during tests, atexit will not run registered functions before tearDown
        # is called and instead will run them right before the entire test process exits.
        # It is a problem on Windows, that does not accept to clean resources before closing them.
        logging.shutdown()
        shutil.rmtree(self.tempdir)


class ConfigTestCase(TempDirTestCase):
    """Test class which sets up a NamespaceConfig object."""

    def setUp(self) -> None:
        super().setUp()
        os.mkdir(os.path.join(self.tempdir, "docroot"))
        self.config = configuration.NamespaceConfig(make_namespace(self.tempdir))
