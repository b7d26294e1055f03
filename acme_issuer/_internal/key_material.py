"""Load or generate private keys."""
import logging
from typing import Optional

from acme_issuer import crypto_util
from acme_issuer import errors
from acme_issuer import interfaces
from acme_issuer.achallenges import KeyPair

logger = logging.getLogger(__name__)


class KeyMaterialResolver:
    """Reuse the key stored at a path, or create and store a new one."""

    def __init__(self, key_store: interfaces.KeyStore,
                 log: Optional[logging.Logger] = None) -> None:
        self.key_store = key_store
        self.logger = log if log is not None else logger

    def resolve(self, path: str, bits: int = 2048) -> KeyPair:
        """Return the key pair at ``path``, generating it if missing.

        :param str path: Key location in the `.KeyStore`.
        :param int bits: RSA key size used when a key is generated.

        :raises .errors.KeyStoreError: if a stored key cannot be used

        """
        try:
            key_pair = self.key_store.get(path)
        except errors.KeyNotFound:
            self.logger.info("Generating key (%d bits) at %s", bits, path)
            return self.key_store.put(path, crypto_util.make_key_pair(bits))
        self.logger.debug("Reusing existing key at %s", path)
        return key_pair
