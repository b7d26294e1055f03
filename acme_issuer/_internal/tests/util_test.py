"""Tests for acme_issuer.util."""
import os
import stat
import sys
import unittest
from unittest import mock

import pytest

from acme_issuer import errors
from acme_issuer._internal.tests import util as test_util


class MakeOrVerifyDirTest(test_util.TempDirTestCase):
    """Tests for acme_issuer.util.make_or_verify_dir."""

    def setUp(self):
        super().setUp()
        self.path = os.path.join(self.tempdir, "foo")

    def _call(self, directory, mode=0o755):
        from acme_issuer.util import make_or_verify_dir
        return make_or_verify_dir(directory, mode)

    def test_creates_dir_when_missing(self):
        old_umask = os.umask(0)
        try:
            self._call(self.path, 0o750)
        finally:
            os.umask(old_umask)
        assert stat.S_IMODE(os.stat(self.path).st_mode) == 0o750

    def test_existing_correct_mode_does_not_fail(self):
        os.mkdir(self.path)
        self._call(self.path)

    def test_reraises_os_error(self):
        with mock.patch("acme_issuer.util.os.makedirs") as makedirs:
            makedirs.side_effect = PermissionError(13, "Permission denied")
            with pytest.raises(OSError):
                self._call(self.path)


class SafeOpenTest(test_util.TempDirTestCase):
    """Tests for acme_issuer.util.safe_open."""

    def setUp(self):
        super().setUp()
        self.path = os.path.join(self.tempdir, "foo")

    def _call(self, mode=None):
        from acme_issuer.util import safe_open
        return safe_open(self.path, "w", chmod=mode)

    def test_mode(self):
        with self._call(0o600) as new_file:
            new_file.write("bar")
        assert stat.S_IMODE(os.stat(self.path).st_mode) == 0o600
        with open(self.path) as check:
            assert check.read() == "bar"

    def test_existing_file(self):
        self._call(0o600).close()
        with pytest.raises(FileExistsError):
            self._call(0o600)


class SafelyRemoveTest(test_util.TempDirTestCase):
    """Tests for acme_issuer.util.safely_remove."""

    def setUp(self):
        super().setUp()
        self.path = os.path.join(self.tempdir, "test")

    def _call(self):
        from acme_issuer.util import safely_remove
        return safely_remove(self.path)

    def test_exists(self):
        with open(self.path, "w"):
            pass
        self._call()
        assert not os.path.exists(self.path)

    def test_missing(self):
        self._call()

    def test_other_error_passthrough(self):
        with mock.patch("acme_issuer.util.os.remove") as mock_remove:
            mock_remove.side_effect = PermissionError(13, "Permission denied")
            with pytest.raises(OSError):
                self._call()


class ParseDomainsTest(unittest.TestCase):
    """Tests for acme_issuer.util.parse_domains."""

    @classmethod
    def _call(cls, domains):
        from acme_issuer.util import parse_domains
        return parse_domains(domains)

    def test_order_kept_and_duplicates_removed(self):
        assert self._call("www.Example.com, example.com,www.example.com.") == \
            ["www.example.com", "example.com"]

    def test_empty_items_ignored(self):
        assert self._call("example.com,,") == ["example.com"]

    def test_invalid(self):
        with pytest.raises(errors.ConfigurationError):
            self._call("example.com, not a domain")


class EnforceDomainSanityTest(unittest.TestCase):
    """Tests for acme_issuer.util.enforce_domain_sanity."""

    @classmethod
    def _call(cls, domain):
        from acme_issuer.util import enforce_domain_sanity
        return enforce_domain_sanity(domain)

    def test_normalized(self):
        assert self._call("Example.COM.") == "example.com"

    def test_rejected(self):
        for domain in ("http://example.com", "*.example.com", "192.0.2.1", "::1",
                       "localhost", "exa mple.com", "example..com",
                       "-example.com", "a" * 64 + ".com", ("a." * 128) + "com",
                       "ëxample.com"):
            with pytest.raises(errors.ConfigurationError):
                self._call(domain)


class AtexitRegisterTest(unittest.TestCase):
    """Tests for acme_issuer.util.atexit_register."""

    def setUp(self):
        self.func = mock.MagicMock()
        self.args = ("hi",)
        self.kwargs = {"answer": 42}

    @classmethod
    def _call(cls, *args, **kwargs):
        from acme_issuer.util import atexit_register
        atexit_register(*args, **kwargs)

    def test_called(self):
        self._test_common(os.getpid())
        self.func.assert_called_with(*self.args, **self.kwargs)

    def test_not_called(self):
        self._test_common(initial_pid=-1)
        assert self.func.called is False

    def _test_common(self, initial_pid):
        with mock.patch("acme_issuer.util._INITIAL_PID", initial_pid):
            with mock.patch("acme_issuer.util.atexit") as mock_atexit:
                self._call(self.func, *self.args, **self.kwargs)

            # _INITIAL_PID must be mocked when calling atexit_func
            assert mock_atexit.register.called
            args, kwargs = mock_atexit.register.call_args
            atexit_func = args[0]
            atexit_func(*args[1:], **kwargs)


if __name__ == "__main__":
    sys.exit(pytest.main(sys.argv[1:] + [__file__]))  # pragma: no cover
