"""Filesystem storage for keys, certificates and issuance records."""
import json
import logging
import os
from typing import Any
from typing import Dict

from acme_issuer import crypto_util
from acme_issuer import errors
from acme_issuer import interfaces
from acme_issuer import util
from acme_issuer._internal import constants
from acme_issuer.achallenges import CertificateBundle
from acme_issuer.achallenges import KeyPair

logger = logging.getLogger(__name__)

CERT = "cert.pem"
CHAIN = "chain.pem"
FULLCHAIN = "fullchain.pem"


class FileKeyStore(interfaces.KeyStore):
    """PEM private keys stored below a root directory.

    :ivar str root: Directory key paths are relative to.

    """
    def __init__(self, root: str) -> None:
        self.root = root

    def get(self, path: str) -> KeyPair:
        key_path = os.path.join(self.root, path)
        try:
            with open(key_path, "rb") as key_file:
                key_pem = key_file.read()
        except FileNotFoundError:
            raise errors.KeyNotFound(f"No key found at {key_path}")
        except OSError as error:
            raise errors.KeyStoreError(f"Unable to read key at {key_path}: {error}")
        try:
            return crypto_util.load_key_pair(key_pem)
        except (ValueError, TypeError) as error:
            logger.debug("Invalid key at %s", key_path, exc_info=True)
            raise errors.KeyStoreError(f"Invalid private key at {key_path}: {error}")

    def put(self, path: str, key_pair: KeyPair) -> KeyPair:
        key_path = os.path.join(self.root, path)
        try:
            util.make_or_verify_dir(os.path.dirname(key_path), constants.KEY_DIRS_MODE)
            with util.safe_open(key_path, "wb", chmod=0o600) as key_file:
                key_file.write(key_pair.private_key)
        except FileExistsError:
            raise errors.KeyStoreError(f"Refusing to overwrite existing key {key_path}")
        except OSError as error:
            raise errors.KeyStoreError(f"Unable to save key to {key_path}: {error}")
        logger.debug("Saved key to %s", key_path)
        return key_pair


class FileCertificateStore(interfaces.CertificateStore):
    """Certificate lineages stored as ``<root>/<name>/{cert,chain,fullchain}.pem``.

    :ivar str root: Directory holding one subdirectory per lineage.

    """
    def __init__(self, root: str) -> None:
        self.root = root

    def get(self, name: str) -> CertificateBundle:
        fullchain_path = os.path.join(self.root, name, FULLCHAIN)
        try:
            with open(fullchain_path) as fullchain_file:
                fullchain_pem = fullchain_file.read()
        except FileNotFoundError:
            raise errors.CertificateNotFound(f"No certificate stored for {name}")
        except OSError as error:
            raise errors.CertStorageError(
                f"Unable to read certificate at {fullchain_path}: {error}")
        try:
            return crypto_util.bundle_from_fullchain(fullchain_pem)
        except errors.CertificateRequestFailed:
            raise errors.CertStorageError(f"No certificate found in {fullchain_path}")

    def put(self, bundle: CertificateBundle) -> str:
        names = crypto_util.get_names_from_cert(bundle.cert_pem)
        if not names:
            raise errors.CertStorageError("Issued certificate carries no name")
        lineage_dir = os.path.join(self.root, names[0])
        try:
            util.make_or_verify_dir(lineage_dir, constants.CONFIG_DIRS_MODE)
            for filename, content in ((CERT, bundle.cert_pem),
                                      (CHAIN, bundle.chain_pem),
                                      (FULLCHAIN, bundle.fullchain_pem)):
                path = os.path.join(lineage_dir, filename)
                with open(path, "w") as pem_file:
                    pem_file.write(content)
                logger.debug("Wrote %s", path)
        except OSError as error:
            raise errors.CertStorageError(
                f"Unable to save certificate to {lineage_dir}: {error}")
        return lineage_dir


def save_issuance_config(path: str, record: Dict[str, Any]) -> None:
    """Write the parameters of an issuance as pretty printed JSON.

    :param str path: Destination file, overwritten if it exists.
    :param dict record: JSON serializable issuance parameters.

    """
    try:
        util.make_or_verify_dir(os.path.dirname(path), constants.CONFIG_DIRS_MODE)
        with open(path, "w") as config_file:
            config_file.write(json.dumps(record, indent=4) + "\n")
    except OSError as error:
        raise errors.CertStorageError(f"Unable to save issuance config to {path}: {error}")
    logger.debug("Saved issuance config to %s", path)
