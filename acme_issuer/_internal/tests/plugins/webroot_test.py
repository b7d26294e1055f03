"""Tests for acme_issuer._internal.plugins.webroot."""
import os
import pwd
import stat
import sys
import unittest
from unittest import mock

import pytest

from acme_issuer import errors
from acme_issuer._internal.tests import util as test_util

TOKEN = "ZXZhR3hmQURzNnBTUmIyTEF2OUlaZjE3RHQzanV4R0o"
CURRENT_USER = pwd.getpwuid(os.getuid()).pw_name


class WebrootChallengeStoreTest(test_util.TempDirTestCase):
    """Tests for acme_issuer._internal.plugins.webroot.WebrootChallengeStore."""

    def setUp(self):
        super().setUp()
        from acme_issuer._internal.plugins.webroot import WebrootChallengeStore
        self.root = os.path.join(self.tempdir, "docroot")
        os.mkdir(self.root)
        self.store = WebrootChallengeStore(self.root)
        self.challenge_dir = os.path.join(self.root, ".well-known", "acme-challenge")
        self.validation_path = os.path.join(self.challenge_dir, TOKEN)

    def test_missing_docroot(self):
        from acme_issuer._internal.plugins.webroot import WebrootChallengeStore
        with pytest.raises(errors.PluginError):
            WebrootChallengeStore(os.path.join(self.tempdir, "missing"))

    def test_put(self):
        self.store.put(TOKEN, "payload", CURRENT_USER)
        with open(self.validation_path) as validation_file:
            assert validation_file.read() == "payload"
        # Check permissions of the directories and of the challenge file
        for path in (self.challenge_dir, os.path.dirname(self.challenge_dir)):
            assert stat.S_IMODE(os.stat(path).st_mode) == 0o755
        assert stat.S_IMODE(os.stat(self.validation_path).st_mode) == 0o644

    def test_put_restores_umask(self):
        old_umask = os.umask(0o077)
        try:
            self.store.put(TOKEN, "payload", CURRENT_USER)
            assert os.umask(0o077) == 0o077
        finally:
            os.umask(old_umask)

    @mock.patch("acme_issuer._internal.plugins.webroot.os.chown")
    def test_put_chowns_to_user(self, mock_chown):
        owner = pwd.getpwnam(CURRENT_USER)
        self.store.put(TOKEN, "payload", CURRENT_USER)
        mock_chown.assert_any_call(self.validation_path, owner.pw_uid, owner.pw_gid)
        mock_chown.assert_any_call(self.challenge_dir, owner.pw_uid, owner.pw_gid)

    @mock.patch("acme_issuer._internal.plugins.webroot.os.chown")
    def test_put_chown_failure_is_not_fatal(self, mock_chown):
        mock_chown.side_effect = PermissionError("not allowed")
        self.store.put(TOKEN, "payload", CURRENT_USER)
        assert os.path.exists(self.validation_path)

    @mock.patch("acme_issuer._internal.plugins.webroot.pwd.getpwnam")
    def test_put_unknown_user(self, mock_getpwnam):
        mock_getpwnam.side_effect = KeyError("nobody-here")
        with pytest.raises(errors.PluginError):
            self.store.put(TOKEN, "payload", "nobody-here")
        assert not os.path.exists(self.challenge_dir)

    def test_put_rejects_bad_token(self):
        with pytest.raises(errors.ProtocolViolation):
            self.store.put("../../evil", "payload", CURRENT_USER)

    @mock.patch("acme_issuer._internal.plugins.webroot.open", create=True)
    def test_put_write_failure(self, mock_open):
        mock_open.side_effect = OSError("read-only file system")
        with pytest.raises(errors.PluginError):
            self.store.put(TOKEN, "payload", CURRENT_USER)

    def test_delete(self):
        self.store.put(TOKEN, "payload", CURRENT_USER)
        assert self.store.created_dirs == [os.path.dirname(self.challenge_dir),
                                           self.challenge_dir]
        self.store.delete(TOKEN)
        assert not os.path.exists(self.validation_path)
        assert not os.path.exists(os.path.join(self.root, ".well-known"))
        assert os.path.isdir(self.root)
        assert self.store.created_dirs == []

    def test_delete_keeps_preexisting_dirs(self):
        os.makedirs(self.challenge_dir)
        self.store.put(TOKEN, "payload", CURRENT_USER)
        assert self.store.created_dirs == []
        self.store.delete(TOKEN)
        assert not os.path.exists(self.validation_path)
        assert os.path.isdir(self.challenge_dir)

    def test_delete_keeps_preexisting_well_known(self):
        well_known = os.path.join(self.root, ".well-known")
        os.mkdir(well_known)
        self.store.put(TOKEN, "payload", CURRENT_USER)
        self.store.delete(TOKEN)
        assert not os.path.exists(self.challenge_dir)
        assert os.path.isdir(well_known)

    def test_delete_keeps_other_files(self):
        self.store.put(TOKEN, "payload", CURRENT_USER)
        self.store.put("other", "payload", CURRENT_USER)
        self.store.delete(TOKEN)
        assert os.path.exists(os.path.join(self.challenge_dir, "other"))
        self.store.delete("other")
        assert not os.path.exists(os.path.join(self.root, ".well-known"))

    def test_delete_missing(self):
        self.store.delete(TOKEN)
        self.store.put(TOKEN, "payload", CURRENT_USER)
        self.store.delete(TOKEN)
        self.store.delete(TOKEN)
        assert not os.path.exists(self.validation_path)


class Http01FulfillerTest(unittest.TestCase):
    """Tests for acme_issuer._internal.plugins.webroot.Http01Fulfiller."""

    def setUp(self):
        from acme_issuer._internal.plugins.webroot import Http01Fulfiller
        self.store = mock.MagicMock()
        self.fulfiller = Http01Fulfiller(self.store, "www-data")

    def test_self_verify(self):
        assert self.fulfiller.self_verify is True
        assert self.fulfiller.typ == "http-01"

    def test_prepare_is_pure(self):
        handle = self.fulfiller.prepare("example.com", TOKEN, TOKEN + ".thumb")
        assert handle.validation == TOKEN + ".thumb"
        assert not handle.provisioned
        self.store.put.assert_not_called()

    def test_provision_and_cleanup(self):
        handle = self.fulfiller.prepare("example.com", TOKEN, TOKEN + ".thumb")
        self.fulfiller.provision(handle)
        self.store.put.assert_called_once_with(TOKEN, TOKEN + ".thumb", "www-data")
        self.fulfiller.cleanup(handle)
        self.fulfiller.cleanup(handle)
        self.store.delete.assert_called_once_with(TOKEN)
        assert handle.cleaned

    def test_cleanup_unprovisioned(self):
        handle = self.fulfiller.prepare("example.com", TOKEN, TOKEN + ".thumb")
        self.fulfiller.cleanup(handle)
        self.store.delete.assert_not_called()

    def test_cleanup_after_failed_write(self):
        self.store.put.side_effect = errors.PluginError("disk full")
        handle = self.fulfiller.prepare("example.com", TOKEN, TOKEN + ".thumb")
        with pytest.raises(errors.PluginError):
            self.fulfiller.provision(handle)
        self.fulfiller.cleanup(handle)
        self.store.delete.assert_called_once_with(TOKEN)

    def test_failed_cleanup_can_be_retried(self):
        handle = self.fulfiller.prepare("example.com", TOKEN, TOKEN + ".thumb")
        self.fulfiller.provision(handle)
        self.store.delete.side_effect = [errors.PluginError("busy"), None]
        with pytest.raises(errors.PluginError):
            self.fulfiller.cleanup(handle)
        self.fulfiller.cleanup(handle)
        assert self.store.delete.call_count == 2
        assert handle.cleaned

    def test_from_config(self):
        from acme_issuer._internal.plugins.webroot import Http01Fulfiller
        config = mock.MagicMock(path="/var/www", user="nginx")
        with mock.patch("acme_issuer._internal.plugins.webroot.os.path.isdir",
                        return_value=True):
            fulfiller = Http01Fulfiller.from_config(config)
        assert fulfiller.user == "nginx"
        assert fulfiller.store.docroot == "/var/www"


if __name__ == "__main__":
    sys.exit(pytest.main(sys.argv[1:] + [__file__]))  # pragma: no cover
