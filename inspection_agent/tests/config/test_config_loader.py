# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for loading and validating the TOML configuration."""
from datetime import timedelta

import pytest

from src.config.loader import Loader, expand_env
from src.types.errors import ConfigError

BASE = """
[server]
addr = "0.0.0.0:8080"

[agents.orchestrator]
enabled = true
[agents.orchestrator.llm]
provider = "openai"
model = "gpt-4o"
api_key = "${TEST_OPENAI_KEY:fallback-key}"
timeout = "30s"
"""


class TestExpandEnv:

    def test_env_value(self, monkeypatch):
        monkeypatch.setenv("TEST_VAR", "value")
        assert expand_env("a=${TEST_VAR}") == "a=value"

    def test_default_used_when_unset_or_empty(self, monkeypatch):
        monkeypatch.delenv("TEST_VAR", raising=False)
        assert expand_env("${TEST_VAR:dflt}") == "dflt"
        monkeypatch.setenv("TEST_VAR", "")
        assert expand_env("${TEST_VAR:dflt}") == "dflt"

    def test_unset_without_default_is_empty(self, monkeypatch):
        monkeypatch.delenv("TEST_VAR", raising=False)
        assert expand_env("[${TEST_VAR}]") == "[]"


class TestLoader:

    def test_load_minimal(self, write_config, monkeypatch):
        monkeypatch.delenv("TEST_OPENAI_KEY", raising=False)
        cfg = Loader(write_config(BASE)).load()

        assert cfg.server.addr == "0.0.0.0:8080"
        llm = cfg.agents["orchestrator"].llm
        assert llm.api_key == "fallback-key"
        assert llm.timeout == timedelta(seconds=30)
        assert cfg.log.level == "info"
        assert cfg.services == {}

    def test_conversation_defaults(self, write_config):
        conv = Loader(write_config(BASE)).load().conversation
        assert conv.context_window_tokens == 128000
        assert conv.compression_threshold == 0.8
        assert conv.max_in_context_messages == 50
        assert conv.retain_recent_messages == 16
        assert conv.summary_max_output_tokens == 768
        assert conv.summary_model_agent == "orchestrator"

    def test_explicit_conversation_values_kept(self, write_config):
        conv = Loader(write_config(BASE + """
[conversation]
context_window_tokens = 1000
compression_threshold = 0.5
max_in_context_messages = 10
retain_recent_messages = 4
summary_model_agent = "report_agent"
""")).load().conversation
        assert conv.context_window_tokens == 1000
        assert conv.compression_threshold == 0.5
        assert conv.retain_recent_messages == 4
        assert conv.summary_model_agent == "report_agent"

    def test_retain_must_be_below_max(self, write_config):
        path = write_config(BASE + """
[conversation]
max_in_context_messages = 4
retain_recent_messages = 4
""")
        with pytest.raises(ConfigError, match="retain_recent_messages must be <"):
            Loader(path).load()

    def test_disabled_entries_are_dropped(self, write_config):
        cfg = Loader(write_config(BASE + """
[agents.report_agent]
[agents.report_agent.llm]
provider = "openai"
model = "gpt-4o"

[services.prom]
type = "prometheus"
enabled = true
[services.prom.options]
address = "http://prom:9090"

[services.old]
type = "prometheus"
""")).load()
        assert list(cfg.agents) == ["orchestrator"]
        assert list(cfg.services) == ["prom"]

    def test_unknown_keys(self, write_config):
        path = write_config(BASE + """
[log]
level = "info"
colour = "always"
""")
        with pytest.raises(ConfigError, match="unknown keys") as excinfo:
            Loader(path).load()
        assert "log.colour" in str(excinfo.value)

    def test_invalid_values(self, write_config):
        with pytest.raises(ConfigError, match="validate config"):
            Loader(write_config(BASE.replace("0.0.0.0:8080", "no-port"))).load()
        with pytest.raises(ConfigError, match="validate config"):
            Loader(write_config(BASE.replace('provider = "openai"', 'provider = "acme"'))).load()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="load config file"):
            Loader(tmp_path / "absent.toml").load()

    def test_bad_toml(self, write_config):
        with pytest.raises(ConfigError, match="parse config file"):
            Loader(write_config("[server\naddr=")).load()

    def test_get_before_load(self, write_config):
        with pytest.raises(ConfigError, match="config not loaded"):
            Loader(write_config(BASE)).get()

    def test_service_options_stay_raw(self, write_config):
        loader = Loader(write_config(BASE + """
[services.pd]
type = "pagerduty"
enabled = true
[services.pd.options]
api_key = "abc"
from = "oncall@example.com"
"""))
        loader.load()
        assert loader.get_service_options("pd") == {"api_key": "abc", "from": "oncall@example.com"}
        with pytest.raises(ConfigError, match="service missing not found"):
            loader.get_service_options("missing")
