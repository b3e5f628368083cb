"""
Tests for layered routing configuration.
"""

import json
import logging

import pytest

from biroute.config import (
    ConfigError,
    ConfigLoader,
    RoutingConfig,
    build_cache,
    configure_logging,
    load_config,
)
from biroute.faults import Fault, FaultDomain, Severity


class TestRoutingConfig:
    """Test typed settings validation."""

    def test_defaults(self):
        config = RoutingConfig()
        assert config.to_dict() == {
            "cache_size": 1000,
            "cache_ttl": None,
            "default_end": False,
            "log_level": "WARNING",
        }

    def test_log_level_normalized(self):
        assert RoutingConfig(log_level="debug").log_level == "DEBUG"

    @pytest.mark.parametrize("kwargs", [
        {"cache_size": -1},
        {"cache_size": "10"},
        {"cache_size": True},
        {"cache_ttl": 0},
        {"cache_ttl": "soon"},
        {"default_end": "yes"},
        {"log_level": "LOUD"},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigError):
            RoutingConfig(**kwargs)


class TestConfigLoader:
    """Test merging of config sources."""

    def test_yaml_file(self, tmp_path, clean_env):
        path = tmp_path / "routing.yaml"
        path.write_text("routing:\n  cache_size: 50\n  default_end: true\n")
        config = ConfigLoader.load([str(path)]).routing_config()
        assert config.cache_size == 50
        assert config.default_end is True

    def test_json_file_top_level(self, tmp_path, clean_env):
        path = tmp_path / "routing.json"
        path.write_text(json.dumps({"cache_ttl": 2.5}))
        assert load_config([str(path)]).cache_ttl == 2.5

    def test_glob_patterns_merge_in_order(self, tmp_path, clean_env):
        (tmp_path / "a.yaml").write_text("routing:\n  cache_size: 1\n  log_level: info\n")
        (tmp_path / "b.yaml").write_text("routing:\n  cache_size: 2\n")
        config = load_config([str(tmp_path / "*.yaml")])
        assert config.cache_size == 2
        assert config.log_level == "INFO"

    def test_empty_yaml_file(self, tmp_path, clean_env):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config([str(path)]) == RoutingConfig()

    def test_unsupported_file(self, tmp_path, clean_env):
        path = tmp_path / "routing.toml"
        path.write_text("x = 1")
        with pytest.raises(ConfigError, match="Unsupported config file type") as exc_info:
            ConfigLoader.load([str(path)])
        fault = exc_info.value
        assert isinstance(fault, Fault)
        assert fault.code == "CONFIG_INVALID"
        assert fault.domain == FaultDomain.CONFIG
        assert fault.severity == Severity.FATAL
        assert fault.metadata == {"path": str(path)}

    def test_invalid_yaml(self, tmp_path, clean_env):
        path = tmp_path / "bad.yaml"
        path.write_text("routing: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            ConfigLoader.load([str(path)])

    def test_non_mapping_file(self, tmp_path, clean_env):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigError, match="must contain a mapping"):
            ConfigLoader.load([str(path)])

    def test_env_file(self, tmp_path, clean_env):
        env_file = tmp_path / ".env"
        env_file.write_text("BIROUTE_ROUTING__CACHE_SIZE=7\nOTHER=ignored\n")
        loader = ConfigLoader.load(env_file=str(env_file))
        assert loader.get("routing.cache_size") == 7
        assert loader.get("other") is None

    def test_environment_overrides_files(self, tmp_path, clean_env):
        path = tmp_path / "routing.yaml"
        path.write_text("routing:\n  cache_size: 50\n")
        clean_env.setenv("BIROUTE_ROUTING__CACHE_SIZE", "75")
        clean_env.setenv("BIROUTE_DEFAULT_END", "true")
        config = load_config([str(path)])
        assert config.cache_size == 75
        assert config.default_end is True

    def test_overrides_win(self, clean_env):
        clean_env.setenv("BIROUTE_LOG_LEVEL", "ERROR")
        config = load_config(overrides={"log_level": "DEBUG"})
        assert config.log_level == "DEBUG"

    def test_parse_value(self):
        loader = ConfigLoader()
        assert loader._parse_value("no") is False
        assert loader._parse_value("null") is None
        assert loader._parse_value("1.5") == 1.5
        assert loader._parse_value('{"a": 1}') == {"a": 1}
        assert loader._parse_value("text") == "text"

    def test_unknown_routing_keys_warn(self, caplog, clean_env):
        with caplog.at_level(logging.WARNING, logger="biroute.config"):
            ConfigLoader.load(overrides={"routing": {"cache_sise": 3}}).routing_config()
        assert "cache_sise" in caplog.text

    def test_routing_section_must_be_mapping(self, clean_env):
        with pytest.raises(ConfigError):
            ConfigLoader.load(overrides={"routing": 5}).routing_config()


class TestConfigHelpers:
    """Test helpers consuming RoutingConfig."""

    def test_build_cache(self):
        cache = build_cache(RoutingConfig(cache_size=3, cache_ttl=1.0))
        assert cache.max_size == 3
        assert cache.ttl == 1.0

    def test_configure_logging(self):
        logger = logging.getLogger("biroute")
        previous = logger.level
        try:
            configure_logging(RoutingConfig(log_level="ERROR"))
            assert logger.level == logging.ERROR
        finally:
            logger.setLevel(previous)
