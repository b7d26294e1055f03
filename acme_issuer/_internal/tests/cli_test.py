"""Tests for acme_issuer._internal.cli."""
import argparse
import io
import os
import sys
import unittest
from unittest import mock

import pytest

import acme_issuer
from acme_issuer import errors
from acme_issuer._internal import constants
from acme_issuer._internal.tests import util as test_util


class ParseTest(test_util.TempDirTestCase):
    """Tests for acme_issuer._internal.cli.prepare_and_parse_args."""

    def setUp(self):
        super().setUp()
        self.docroot = os.path.join(self.tempdir, "docroot")
        os.mkdir(self.docroot)
        patcher = mock.patch.dict(constants.CLI_DEFAULTS, {"config_files": []})
        patcher.start()
        self.addCleanup(patcher.stop)

    def _parse(self, *args):
        from acme_issuer._internal.cli import prepare_and_parse_args
        return prepare_and_parse_args(
            ["--config-dir", os.path.join(self.tempdir, "config"),
             "--logs-dir", os.path.join(self.tempdir, "logs")] + list(args))

    def test_defaults(self):
        config = self._parse("-d", "example.com", "-p", self.docroot)
        assert config.verb == "issue"
        assert config.domains == ["example.com"]
        assert config.path == self.docroot
        for name in ("user", "bits", "challenge", "hosted_zone_id", "propagation_timeout",
                     "preflight_timeout", "verbose_count", "quiet", "max_log_backups"):
            assert getattr(config, name) == constants.CLI_DEFAULTS[name]

    def test_explicit_verb(self):
        config = self._parse("issue", "-d", "example.com", "-p", self.docroot)
        assert config.verb == "issue"

    def test_unknown_verb(self):
        with mock.patch("sys.stderr", new_callable=io.StringIO):
            with pytest.raises(SystemExit):
                self._parse("renew", "-d", "example.com", "-p", self.docroot)

    def test_domains_accumulate(self):
        config = self._parse("-d", "Example.com,www.example.com", "--domains",
                             "www.example.com, mail.example.com", "-p", self.docroot)
        assert config.domains == ["example.com", "www.example.com", "mail.example.com"]

    def test_invalid_domain(self):
        with pytest.raises(errors.ConfigurationError):
            self._parse("-d", "http://example.com", "-p", self.docroot)

    def test_missing_domains(self):
        with pytest.raises(errors.ConfigurationError):
            self._parse("-p", self.docroot)

    def test_missing_path(self):
        with pytest.raises(errors.ConfigurationError):
            self._parse("-d", "example.com")

    def test_dns01(self):
        config = self._parse("-d", "example.com", "-p", self.docroot, "-c", "dns-01",
                             "--hosted-zone-id", "Z2LMAAAAAAAAAA",
                             "--propagation-timeout", "120", "--preflight-timeout", "2.5")
        assert config.challenge == "dns-01"
        assert config.hosted_zone_id == "Z2LMAAAAAAAAAA"
        assert config.propagation_timeout == 120
        assert config.preflight_timeout == 2.5

    def test_dns01_without_zone(self):
        with pytest.raises(errors.ConfigurationError):
            self._parse("-d", "example.com", "-p", self.docroot, "--challenge", "dns-01")

    def test_unsupported_challenge(self):
        with mock.patch("sys.stderr", new_callable=io.StringIO) as stderr:
            with pytest.raises(SystemExit):
                self._parse("-d", "example.com", "-p", self.docroot, "-c", "tls-alpn-01")
        assert "invalid choice" in stderr.getvalue()

    def test_verbosity(self):
        config = self._parse("-vvv", "-d", "example.com", "-p", self.docroot)
        assert config.verbose_count == 3
        assert self._parse("-q", "-d", "example.com", "-p", self.docroot).quiet is True

    def test_negative_max_log_backups(self):
        with mock.patch("sys.stderr", new_callable=io.StringIO):
            with pytest.raises(SystemExit):
                self._parse("-d", "example.com", "-p", self.docroot,
                            "--max-log-backups", "-1")

    def test_version(self):
        with mock.patch("sys.stdout", new_callable=io.StringIO) as stdout:
            with pytest.raises(SystemExit):
                self._parse("--version")
        assert acme_issuer.__version__ in stdout.getvalue()

    def test_config_file(self):
        config_file = os.path.join(self.tempdir, "cli.ini")
        with open(config_file, "w") as handle:
            handle.write(f"domains = example.com\npath = {self.docroot}\n"
                         "challenge = dns-01\nhosted-zone-id = Z2LMAAAAAAAAAA\n")
        config = self._parse("--config", config_file)
        assert config.domains == ["example.com"]
        assert config.challenge == "dns-01"
        assert config.hosted_zone_id == "Z2LMAAAAAAAAAA"

    def test_command_line_overrides_config_file(self):
        config_file = os.path.join(self.tempdir, "cli.ini")
        with open(config_file, "w") as handle:
            handle.write("user = nginx\nbits = 4096\n")
        config = self._parse("--config", config_file, "-d", "example.com",
                             "-p", self.docroot, "--bits", "3072")
        assert config.user == "nginx"
        assert config.bits == 3072


class NonnegativeIntTest(unittest.TestCase):
    """Tests for acme_issuer._internal.cli.nonnegative_int."""

    @classmethod
    def _call(cls, value):
        from acme_issuer._internal.cli import nonnegative_int
        return nonnegative_int(value)

    def test_valid(self):
        assert self._call("0") == 0
        assert self._call("42") == 42

    def test_invalid(self):
        for value in ("-1", "foo", "1.5"):
            with pytest.raises(argparse.ArgumentTypeError):
                self._call(value)


class AddDomainsTest(unittest.TestCase):
    """Tests for acme_issuer._internal.cli.add_domains."""

    def test_returns_validated_domains(self):
        from acme_issuer._internal.cli import add_domains
        namespace = argparse.Namespace(domains=["example.com"])
        assert add_domains(namespace, "EXAMPLE.com, www.example.com") == \
            ["example.com", "www.example.com"]
        assert namespace.domains == ["example.com", "www.example.com"]


if __name__ == "__main__":
    sys.exit(pytest.main(sys.argv[1:] + [__file__]))  # pragma: no cover
