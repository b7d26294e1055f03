"""Load the ACME account and open a session with its CA."""
import json
import logging
import os
from typing import Optional
from typing import Tuple

import josepy as jose

from acme import client as acme_client
from acme import errors as acme_errors
from acme import messages
import acme_issuer
from acme_issuer import configuration
from acme_issuer import crypto_util
from acme_issuer import errors
from acme_issuer import interfaces
from acme_issuer._internal import constants

logger = logging.getLogger(__name__)


def load_account(config: configuration.NamespaceConfig,
                 key_store: interfaces.KeyStore) -> Tuple[jose.JWK, str]:
    """Read the account key and the directory URL of its CA.

    :param config: Configuration, providing ``account_dir``.
    :param key_store: `.KeyStore` rooted at ``config_dir``.

    :returns: account key and directory URL
    :rtype: tuple

    :raises .errors.AccountNotFound: if no account was registered

    """
    config_path = os.path.join(config.account_dir, constants.ACCOUNT_CONFIG)
    try:
        with open(config_path) as config_file:
            server = json.load(config_file)["server"]
    except FileNotFoundError:
        raise errors.AccountNotFound(
            f"No account configuration found at {config_path}. "
            "Please register an account first.")
    except (OSError, ValueError, KeyError, TypeError) as error:
        raise errors.AccountNotFound(
            f"Invalid account configuration {config_path}: {error}")

    try:
        key_pair = key_store.get(constants.ACCOUNT_KEY)
    except errors.KeyNotFound:
        raise errors.AccountNotFound(
            "No account key found. Please register an account first.")
    return crypto_util.load_jwk(key_pair.private_key), server


def open_client(account_key: jose.JWK, server: str,
                net: Optional[acme_client.ClientNetwork] = None) -> acme_client.ClientV2:
    """Connect to ``server`` as the existing account owning ``account_key``.

    :raises .errors.AccountNotFound: if the CA does not know the account

    """
    if net is None:
        net = acme_client.ClientNetwork(
            account_key, user_agent=constants.USER_AGENT.format(acme_issuer.__version__))
    try:
        directory = acme_client.ClientV2.get_directory(server, net)
        client = acme_client.ClientV2(directory, net)
        lookup = messages.NewRegistration(only_return_existing=True)
        try:
            regr = client.new_account(lookup)
        except acme_errors.ConflictError as conflict:
            # Existing account: the CA answers with its location only.
            regr = messages.RegistrationResource(
                body=messages.Registration(), uri=conflict.location)
            net.account = regr
    except messages.Error as error:
        if error.code == "accountDoesNotExist":
            raise errors.AccountNotFound(
                f"The account is unknown to {server}. Please register an account first.")
        raise errors.Error(f"Unable to look up the account at {server}: {error}")
    except (acme_errors.Error, ValueError) as error:
        raise errors.Error(f"Unable to look up the account at {server}: {error}")
    logger.debug("Using account %s at %s", regr.uri, server)
    return client
