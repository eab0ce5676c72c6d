"""Tests for deploydiag.utils.config and logging setup."""
import logging

import pytest

from deploydiag.utils import Config, setup_logging


class TestConfig:
    def test_defaults(self):
        config = Config()
        assert config.api_base_url.startswith("https://")
        assert "SENDGRID_API_KEY" in config.sendgrid_vars
        assert config.public_ip_sources[0]['timeout'] == 2.0

    def test_load_overrides(self, config_file):
        path = config_file(api_base_url="https://staging.example.org", http_timeout=3.5)
        config = Config.load(path)
        assert config.api_base_url == "https://staging.example.org"
        assert config.http_timeout == 3.5
        # Untouched fields keep defaults
        assert config.domains == Config().domains

    def test_unknown_keys_ignored(self, config_file):
        config = Config.load(config_file(colour="blue", log_level="DEBUG"))
        assert config.log_level == "DEBUG"
        assert not hasattr(config, "colour")

    def test_invalid_file_falls_back(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{invalid json content")
        assert Config.load(path) == Config()

    def test_non_object_falls_back(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2, 3]")
        assert Config.load(path) == Config()

    def test_missing_file(self, tmp_path):
        assert Config.load(tmp_path / "nope.json") == Config()

    def test_directory_falls_back(self, tmp_path):
        assert Config.load(tmp_path) == Config()

    def test_undecodable_file_falls_back(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_bytes(b'{"log_level": "\xff"}')
        assert Config.load(path) == Config()

    def test_incomplete_ip_sources_dropped(self, config_file):
        path = config_file(public_ip_sources=[
            {"name": "ipify", "url": "https://api.ipify.org?format=json", "json_key": "ip"},
            {"name": "no url"},
            {"url": "https://checkip.example.org"},
            "not a mapping",
        ])
        config = Config.load(path)
        assert [s["name"] for s in config.public_ip_sources] == ["ipify"]

    def test_save_roundtrip(self, tmp_path):
        path = tmp_path / "nested" / "config.json"
        config = Config(domains=["example.org"], require_cname=True)
        config.save(path)
        assert Config.load(path) == config

    def test_api_url(self):
        config = Config(api_base_url="https://api.example.org/")
        assert config.api_url("/api/health") == "https://api.example.org/api/health"
        assert config.api_url("api/health") == "https://api.example.org/api/health"


class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        for handler in root.handlers:
            if handler not in handlers:
                handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_level_name(self):
        root = setup_logging("warning")
        assert root.level == logging.WARNING

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            setup_logging("LOUD")

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "deploydiag.log"
        setup_logging(logging.INFO, log_file)
        logging.getLogger("deploydiag.test").info("hello from test")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "hello from test" in log_file.read_text(encoding='utf-8')
