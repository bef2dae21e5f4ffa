"""
Tests for logging setup and secret masking.
"""

import logging
from pathlib import Path

import pytest

from setupctl.core.observability import logging_config
from setupctl.core.observability.logging_config import (
    MASK,
    SecretMasker,
    _parse_level,
    is_secret_name,
    mask_secrets,
    redact,
    register_secrets,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    logging_config._masker.clear()


def _console() -> logging.Handler:
    (handler,) = [h for h in logging.getLogger().handlers if not isinstance(h, logging.FileHandler)]
    return handler


# ── Levels ───────────────────────────────────────────────────────────


class TestParseLevel:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [("DEBUG", logging.DEBUG), ("info", logging.INFO), (" error ", logging.ERROR)],
    )
    def test_names(self, name, expected):
        assert _parse_level(name) == expected

    @pytest.mark.parametrize("name", [None, "", "LOUD", "Level 5"])
    def test_unknown_means_warning(self, name):
        assert _parse_level(name) == logging.WARNING


class TestSetupLogging:
    def test_warning_is_minimal(self):
        setup_logging("WARNING")
        console = _console()
        assert console.level == logging.WARNING
        assert console.formatter._fmt == "%(message)s"
        assert logging.getLogger().level == logging.WARNING

    def test_info_is_timestamped(self):
        setup_logging("INFO")
        assert "[%(name)s]" in _console().formatter._fmt

    def test_debug_has_file_and_line(self):
        setup_logging("DEBUG")
        assert "%(lineno)d" in _console().formatter._fmt

    def test_repeated_setup_replaces_handlers(self):
        setup_logging("INFO")
        setup_logging("WARNING")
        assert len(logging.getLogger().handlers) == 1

    def test_file_handler_with_own_level(self, tmp_path: Path):
        log_file = tmp_path / "setupctl.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")

        assert logging.getLogger().level == logging.DEBUG
        assert _console().level == logging.WARNING

        logging.getLogger("setupctl.test").debug("fetched %s", "trivy.tar.gz")
        for handler in logging.getLogger().handlers:
            handler.flush()

        text = log_file.read_text()
        assert "DEBUG" in text
        assert "fetched trivy.tar.gz" in text

    def test_file_level_defaults_to_console_level(self, tmp_path: Path):
        log_file = tmp_path / "setupctl.log"
        setup_logging("ERROR", log_file=str(log_file))
        (file_handler,) = [h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)]
        assert file_handler.level == logging.ERROR


# ── Secret masking ───────────────────────────────────────────────────


def _record(msg: str, *args) -> logging.LogRecord:
    return logging.LogRecord("setupctl.test", logging.INFO, __file__, 1, msg, args or None, None)


class TestSecretMasker:
    def test_masks_in_args(self):
        masker = SecretMasker()
        masker.add("hunter22")
        record = _record("Running: %s", "mysql -uroot -phunter22")

        assert masker.filter(record) is True
        assert record.getMessage() == f"Running: mysql -uroot -p{MASK}"

    def test_longest_secret_first(self):
        masker = SecretMasker()
        masker.add("pass", "pass-word-long")
        assert masker.mask("x pass-word-long y") == f"x {MASK} y"

    def test_short_and_empty_values_ignored(self):
        masker = SecretMasker()
        masker.add("", "ab")
        assert masker.secrets == frozenset()

    def test_untouched_record_keeps_args(self):
        masker = SecretMasker()
        masker.add("s3cret")
        record = _record("Loaded %d recipes", 29)
        masker.filter(record)
        assert record.args == (29,)

    def test_registered_secrets_reach_handlers(self, tmp_path: Path):
        log_file = tmp_path / "setupctl.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")
        register_secrets(["Sup3rS3cret!", ""])

        logging.getLogger("setupctl.test").debug("Running: %s", "mysql -pSup3rS3cret!")
        for handler in logging.getLogger().handlers:
            handler.flush()

        text = log_file.read_text()
        assert "Sup3rS3cret!" not in text
        assert f"mysql -p{MASK}" in text


class TestRedaction:
    def test_secret_names(self):
        for name in ("root_password", "initial_password", "api_token", "client_secret"):
            assert is_secret_name(name)
        for name in ("port", "password_file_path", "tokens"):
            assert not is_secret_name(name)

    def test_mask_secrets(self):
        register_secrets(["Tr1cky-pass"])
        assert mask_secrets("mysql -u root -pTr1cky-pass") == f"mysql -u root -p{MASK}"
        assert mask_secrets(None) is None
        assert mask_secrets("") == ""

    def test_redact_nested(self):
        register_secrets(["Tr1cky-pass"])
        facts = {
            "initial_password": "JenkinsAdminPw123",
            "jenkins_version": "2.440",
            "steps": [{"error": "exit 1: -pTr1cky-pass"}],
            "port": 8080,
        }
        assert redact(facts) == {
            "initial_password": MASK,
            "jenkins_version": "2.440",
            "steps": [{"error": f"exit 1: -p{MASK}"}],
            "port": 8080,
        }
        # The input is left alone
        assert facts["initial_password"] == "JenkinsAdminPw123"
