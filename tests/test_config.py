"""Tests for config models and YAML loader."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from consul_insight.config.loader import (
    _interpolate_env,
    _interpolate_recursive,
    find_config_file,
    load_config,
    load_config_or_default,
)
from consul_insight.config.models import (
    DEFAULT_NAMING_RULES,
    ConsulSettings,
    InferenceSettings,
    InsightConfig,
    NamingRule,
)

# ─── Model tests ───


class TestConsulSettings:
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = ConsulSettings()
        assert cfg.address == "http://localhost:8500"
        assert cfg.token == ""
        assert cfg.datacenter == ""
        assert cfg.timeout == 5.0

    def test_reads_consul_environment(self):
        env = {"CONSUL_HTTP_ADDR": "consul.internal:8500", "CONSUL_HTTP_TOKEN": "s3cret"}
        with patch.dict(os.environ, env):
            cfg = ConsulSettings()
        assert cfg.address == "consul.internal:8500"
        assert cfg.token == "s3cret"

    def test_explicit_values_win(self):
        with patch.dict(os.environ, {"CONSUL_HTTP_ADDR": "ignored:8500"}):
            cfg = ConsulSettings(address="http://explicit:8500")
        assert cfg.address == "http://explicit:8500"


class TestInferenceSettings:
    def test_defaults(self):
        cfg = InferenceSettings()
        assert cfg.metadata_dependencies is True
        assert cfg.upstream_meta_key == "upstream_services"
        assert cfg.naming_convention is True
        assert [(r.source, r.target) for r in cfg.naming_rules] == DEFAULT_NAMING_RULES

    def test_custom_rules(self):
        cfg = InferenceSettings(naming_rules=[NamingRule(source="ui", target="bff")])
        assert len(cfg.naming_rules) == 1
        assert cfg.naming_rules[0].target == "bff"


class TestInsightConfig:
    def test_defaults(self):
        cfg = InsightConfig()
        assert cfg.auth.api_key == ""
        assert cfg.inference.naming_convention is True

    def test_from_dict(self, sample_config):
        assert sample_config.consul.address == "http://consul.test:8500"
        assert sample_config.consul.timeout == 2
        assert [(r.source, r.target) for r in sample_config.inference.naming_rules] == [
            ("web", "api"),
            ("service", "db"),
        ]


# ─── Loader tests ───


class TestEnvInterpolation:
    def test_simple_var(self):
        with patch.dict(os.environ, {"CONSUL_HOST": "consul.example.com"}):
            assert _interpolate_env("http://${CONSUL_HOST}:8500") == "http://consul.example.com:8500"

    def test_var_with_default(self):
        os.environ.pop("MISSING_VAR", None)
        assert _interpolate_env("${MISSING_VAR:-fallback}") == "fallback"

    def test_empty_default(self):
        os.environ.pop("MISSING_TOKEN", None)
        assert _interpolate_env("${MISSING_TOKEN:-}") == ""

    def test_var_with_default_overridden(self):
        with patch.dict(os.environ, {"MY_VAR": "real"}):
            assert _interpolate_env("${MY_VAR:-fallback}") == "real"

    def test_unset_var_preserved(self):
        os.environ.pop("UNSET_12345", None)
        assert _interpolate_env("${UNSET_12345}") == "${UNSET_12345}"

    def test_recursive(self):
        with patch.dict(os.environ, {"PORT": "9090"}):
            data = {"url": "http://host:${PORT}", "rules": [{"source": "${PORT}"}], "timeout": 3}
            result = _interpolate_recursive(data)
        assert result == {"url": "http://host:9090", "rules": [{"source": "9090"}], "timeout": 3}


class TestFindConfigFile:
    def test_finds_in_directory(self, tmp_path: Path):
        config = tmp_path / ".consul-insight.yaml"
        config.touch()
        assert find_config_file(tmp_path) == config.resolve()

    def test_finds_in_parent(self, tmp_path: Path):
        config = tmp_path / ".consul-insight.yaml"
        config.touch()
        child = tmp_path / "sub" / "deep"
        child.mkdir(parents=True)
        assert find_config_file(child) == config.resolve()


class TestLoadConfig:
    def test_load_from_path(self, config_file: Path):
        cfg = load_config(config_file)
        assert cfg.consul.address == "http://consul.test:8500"
        assert cfg.inference.naming_rules[0].source == "web"

    def test_env_interpolation_in_file(self, tmp_path: Path):
        path = tmp_path / ".consul-insight.yaml"
        path.write_text("consul:\n  address: ${TEST_CONSUL_ADDR:-http://fallback:8500}\n  token: ${TEST_TOKEN}\n")
        with patch.dict(os.environ, {"TEST_TOKEN": "abc"}):
            os.environ.pop("TEST_CONSUL_ADDR", None)
            cfg = load_config(path)
        assert cfg.consul.address == "http://fallback:8500"
        assert cfg.consul.token == "abc"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_empty_file_gives_defaults(self, tmp_path: Path):
        path = tmp_path / ".consul-insight.yaml"
        path.write_text("")
        cfg = load_config(path)
        assert cfg.inference.upstream_meta_key == "upstream_services"

    def test_non_mapping_rejected(self, tmp_path: Path):
        path = tmp_path / ".consul-insight.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)

    def test_validation_error_becomes_value_error(self, tmp_path: Path):
        path = tmp_path / ".consul-insight.yaml"
        path.write_text("consul:\n  timeout: soon\n")
        with pytest.raises(ValueError, match="Invalid configuration"):
            load_config(path)


class TestLoadConfigOrDefault:
    def test_defaults_when_no_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CONSUL_HTTP_ADDR", "http://from-env:8500")
        cfg = load_config_or_default()
        assert cfg.consul.address == "http://from-env:8500"

    def test_explicit_missing_path_raises(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_config_or_default(tmp_path / "missing.yaml")

    def test_uses_file_when_present(self, config_file: Path):
        assert load_config_or_default(config_file).consul.timeout == 2
