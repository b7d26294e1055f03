"""Webroot fulfiller for http-01 challenges."""
import logging
import os
import pwd
from typing import List
from typing import Optional

from acme_issuer import achallenges
from acme_issuer import configuration
from acme_issuer import errors
from acme_issuer import interfaces
from acme_issuer import util
from acme_issuer._internal.plugins import common

logger = logging.getLogger(__name__)

CHALLENGE_PATH = os.path.join(".well-known", "acme-challenge")
"""Challenge directory, relative to the document root."""


class WebrootChallengeStore(interfaces.ChallengeFileStore):
    """Write token files into the document root of a running web server.

    :ivar str docroot: Absolute path of the document root.
    :ivar str challenge_dir: ``<docroot>/.well-known/acme-challenge``.
    :ivar list created_dirs: Directories created by `put`, parents first.

    """
    def __init__(self, docroot: str) -> None:
        self.docroot = _validate_webroot(docroot)
        self.challenge_dir = os.path.join(self.docroot, CHALLENGE_PATH)
        self.created_dirs: List[str] = []

    def put(self, token: str, payload: str, user: str) -> None:
        owner = _lookup_user(user)
        validation_path = self._path(token)
        logger.debug("Creating root challenges validation dir at %s",
                     self.challenge_dir)

        # Change permissions to be world-readable, owner-writable (GH #1795)
        old_umask = os.umask(0o022)
        try:
            self._create_challenge_dirs(owner)
            logger.debug("Attempting to save validation to %s", validation_path)
            with open(validation_path, "wb") as validation_file:
                validation_file.write(payload.encode())
        except OSError as exception:
            raise errors.PluginError(
                f"Couldn't write challenge file {validation_path}: {exception}")
        finally:
            os.umask(old_umask)
        _chown(validation_path, owner, user)

    def delete(self, token: str) -> None:
        validation_path = self._path(token)
        logger.debug("Removing %s", validation_path)
        try:
            util.safely_remove(validation_path)
        except OSError as exception:
            raise errors.PluginError(
                f"Couldn't remove challenge file {validation_path}: {exception}")

        # Only directories created by put are removed, deepest first.
        while self.created_dirs:
            path = self.created_dirs[-1]
            try:
                os.rmdir(path)
            except FileNotFoundError:
                logger.debug("%s is already gone", path)
            except OSError as exc:
                # still holds the files of other tokens
                logger.debug("Keeping challenge directory %s: %s", path, exc)
                break
            else:
                logger.debug("All challenges cleaned up, removed %s", path)
            self.created_dirs.pop()

    def _create_challenge_dirs(self, owner: pwd.struct_passwd) -> None:
        path = self.docroot
        for part in CHALLENGE_PATH.split(os.sep):
            path = os.path.join(path, part)
            if os.path.isdir(path):
                continue
            # This is coupled with the "umask" call in put because
            # os.mkdir's "mode" parameter may not always work:
            # https://stackoverflow.com/questions/5231901/permission-problems-when-creating-a-dir-with-os-makedirs-python
            util.make_or_verify_dir(path, 0o755)
            self.created_dirs.append(path)
            _chown(path, owner, owner.pw_name)

    def _path(self, token: str) -> str:
        return os.path.join(self.challenge_dir, achallenges.check_token(token))


class Http01Fulfiller(common.ChallengeFulfiller):
    """Serve the key authorization from the web server's document root.

    The file is checked over HTTP before the CA is told to look at it.

    """
    typ = achallenges.HTTP01
    self_verify = True

    def __init__(self, store: interfaces.ChallengeFileStore, user: str,
                 log: Optional[logging.Logger] = None) -> None:
        super().__init__(log)
        self.store = store
        self.user = user

    @classmethod
    def from_config(cls, config: configuration.NamespaceConfig,
                    log: Optional[logging.Logger] = None) -> 'Http01Fulfiller':
        return cls(WebrootChallengeStore(config.path), config.user, log)

    def validation(self, key_authz: str) -> str:
        return key_authz

    def provision(self, handle: common.ArtifactHandle) -> None:
        self.logger.info(
            "Providing payload at http://%s/.well-known/acme-challenge/%s",
            handle.domain, handle.token)
        # A failed write can still leave a partial file behind.
        handle.provisioned = True
        self.store.put(handle.token, handle.validation, self.user)

    def _cleanup(self, handle: common.ArtifactHandle) -> None:
        self.store.delete(handle.token)


def _lookup_user(user: str) -> pwd.struct_passwd:
    try:
        return pwd.getpwnam(user)
    except KeyError:
        raise errors.PluginError(f"Unknown user {user!r} for challenge files.")


def _chown(path: str, owner: pwd.struct_passwd, user: str) -> None:
    try:
        os.chown(path, owner.pw_uid, owner.pw_gid)
    except OSError as exception:
        logger.info("Unable to change owner of %s to %s", path, user)
        logger.debug("Error was: %s", exception)


def _validate_webroot(webroot_path: str) -> str:
    """Validates and returns the absolute path of webroot_path.

    :param str webroot_path: path to the webroot directory

    :returns: absolute path of webroot_path
    :rtype: str

    """
    if not os.path.isdir(webroot_path):
        raise errors.PluginError(webroot_path + " does not exist or is not a directory")

    return os.path.abspath(webroot_path)
