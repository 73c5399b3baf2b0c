"""
Unit tests for server configuration.
"""

import dataclasses
import os
import re

import pytest

from fileserve.config import (
    DEFAULT_IGNORED_NAMES,
    ConfigurationError,
    ServerConfig,
    generate_asset_namespace,
    parse_ignore_list,
)


ENV_VARS = ("PORT", "FILESERVE_HOST", "FILESERVE_WORKERS",
            "FILESERVE_TIMEOUT", "FILESERVE_LOG_LEVEL")


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestDefaults:

    def test_defaults(self, site):
        config = ServerConfig(root_directory=str(site))

        assert config.port == 3000
        assert config.host == "0.0.0.0"
        assert config.cache_seconds == 3600
        assert config.single_page is False
        assert config.gzip_disabled is False
        assert config.ignored_names == DEFAULT_IGNORED_NAMES

    def test_root_is_made_absolute(self, site, monkeypatch):
        monkeypatch.chdir(site.parent)

        config = ServerConfig(root_directory="site")

        assert config.root_directory == os.path.realpath(site)

    def test_ignored_names_extend_defaults(self, site):
        config = ServerConfig(root_directory=str(site),
                              ignored_names=frozenset({"node_modules/"}))

        assert config.ignored_names == {"node_modules/", ".DS_Store", ".git/"}

    def test_asset_namespace(self, site):
        config = ServerConfig(root_directory=str(site))

        assert len(config.asset_namespace) == 10
        assert config.asset_prefix == f"/{config.asset_namespace}"

    def test_asset_namespace_per_instance(self):
        namespaces = {generate_asset_namespace() for _ in range(20)}

        assert len(namespaces) > 1
        for namespace in namespaces:
            assert re.fullmatch(r"[a-z0-9]{10}", namespace)

    def test_frozen(self, config):
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.port = 8080

    def test_replace_keeps_namespace(self, config):
        moved = dataclasses.replace(config, port=4000)

        assert moved.port == 4000
        assert moved.asset_namespace == config.asset_namespace


class TestIgnoreList:

    def test_parse(self):
        assert parse_ignore_list("node_modules/, dist/,,.env") == {
            "node_modules/", "dist/", ".env",
        }

    def test_empty(self):
        assert parse_ignore_list(None) == frozenset()
        assert parse_ignore_list("") == frozenset()


class TestValidate:

    def test_valid(self, config):
        config.validate()

    def test_missing_directory(self, tmp_path):
        config = ServerConfig(root_directory=str(tmp_path / "nope"))

        with pytest.raises(ConfigurationError, match="does not exist"):
            config.validate()

    def test_file_is_not_a_directory(self, site):
        config = ServerConfig(root_directory=str(site / "a.txt"))

        with pytest.raises(ConfigurationError):
            config.validate()

    @pytest.mark.parametrize("overrides", [
        {"port": 0},
        {"port": 70000},
        {"cache_seconds": -1},
        {"min_workers": 0},
        {"min_workers": 8, "max_workers": 4},
        {"buffer_size": 16},
        {"timeout": 0},
        {"log_format": "xml"},
        {"asset_namespace": "../x"},
    ])
    def test_invalid_values(self, make_config, overrides):
        with pytest.raises(ConfigurationError):
            make_config(**overrides).validate()

    def test_is_a_value_error(self):
        assert issubclass(ConfigurationError, ValueError)


class TestFromEnv:

    def test_defaults(self, clean_env, site):
        config = ServerConfig.from_env(root_directory=str(site))

        assert config.port == 3000
        assert config.max_workers == 16
        assert config.min_workers == 4

    def test_environment(self, clean_env, site):
        clean_env.setenv("PORT", "8080")
        clean_env.setenv("FILESERVE_HOST", "127.0.0.1")
        clean_env.setenv("FILESERVE_WORKERS", "2")
        clean_env.setenv("FILESERVE_TIMEOUT", "2.5")
        clean_env.setenv("FILESERVE_LOG_LEVEL", "DEBUG")

        config = ServerConfig.from_env(root_directory=str(site))

        assert config.port == 8080
        assert config.host == "127.0.0.1"
        assert config.max_workers == 2
        assert config.min_workers == 2
        assert config.timeout == 2.5
        assert config.log_level == "DEBUG"

    def test_overrides_win(self, clean_env, site):
        clean_env.setenv("PORT", "8080")

        config = ServerConfig.from_env(root_directory=str(site), port=9000)

        assert config.port == 9000

    def test_none_overrides_are_skipped(self, clean_env, site):
        clean_env.setenv("PORT", "8080")

        config = ServerConfig.from_env(root_directory=str(site), port=None)

        assert config.port == 8080

    def test_bad_port(self, clean_env, site):
        clean_env.setenv("PORT", "eighty")

        with pytest.raises(ConfigurationError, match="Invalid environment value"):
            ServerConfig.from_env(root_directory=str(site))
