"""
Unit tests for the TTL cache and the model invocation client.

Covers:
- TTLCache expiry with an injected clock, cache_key canonicalization
- ModelClient: fallback order, inter-model delays, cache hits, exhaustion
- GeminiOracle error classification (SDK client mocked)

Run with: pytest tests/test_model_client.py -v
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from conftest import FakeOracle
from slidesmith.cache import TTLCache, cache_key
from slidesmith.errors import AllModelsExhaustedError, ConfigError, OracleError, UnparsableOutputError
from slidesmith.oracle import GeminiOracle, InvokeOptions, ModelClient, NullOracle, OracleConfig


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

class TestTTLCache:
    def test_hit_before_expiry_miss_after(self):
        clock = FakeClock()
        cache = TTLCache(ttl_seconds=60, clock=clock)
        cache.set("k", "v")

        clock.now += 59
        assert cache.get("k") == "v"

        clock.now += 1
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_per_entry_ttl(self):
        clock = FakeClock()
        cache = TTLCache(ttl_seconds=60, clock=clock)
        cache.set("short", 1, ttl_seconds=5)
        clock.now += 10
        assert "short" not in cache

    def test_key_ignores_dict_order(self):
        assert cache_key("design", {"a": 1, "b": [1, 2]}) == cache_key("design", {"b": [1, 2], "a": 1})

    def test_key_depends_on_stage(self):
        assert cache_key("design", {"a": 1}) != cache_key("layout", {"a": 1})


# ---------------------------------------------------------------------------
# ModelClient
# ---------------------------------------------------------------------------

def _upper(text):
    if text == "bad":
        raise UnparsableOutputError("bad output")
    return text.upper()


class TestModelClient:
    def test_primary_success(self, no_sleep):
        delays, sleep = no_sleep
        oracle = FakeOracle({"design": ["ok"]})
        client = ModelClient(oracle, TTLCache(), base_delay_seconds=2.0, sleep=sleep)

        inv = client.invoke_structured("p", ["m1", "m2"], InvokeOptions(stage="design"), validate=_upper)

        assert inv.value == "OK"
        assert inv.model == "m1"
        assert inv.attempts == ["m1"]
        assert delays == []

    def test_falls_back_in_order_with_growing_delay(self, no_sleep):
        delays, sleep = no_sleep
        oracle = FakeOracle({"design": [OracleError("429 RESOURCE_EXHAUSTED", throttled=True), "bad", "ok"]})
        client = ModelClient(oracle, None, base_delay_seconds=2.0, sleep=sleep)

        inv = client.invoke_structured("p", ["m1", "m2", "m3"], InvokeOptions(stage="design"), validate=_upper)

        assert inv.model == "m3"
        assert [model for _, model, _ in oracle.calls] == ["m1", "m2", "m3"]
        assert delays == [2.0, 4.0]

    def test_exhausted_lists_attempts(self, no_sleep):
        _, sleep = no_sleep
        client = ModelClient(NullOracle(), None, sleep=sleep)

        with pytest.raises(AllModelsExhaustedError) as exc:
            client.invoke_structured("p", ["m1", "m2"], InvokeOptions(stage="layout"))

        assert exc.value.attempts == ["m1", "m2"]
        assert exc.value.stage == "layout"
        assert isinstance(exc.value.last_error, OracleError)

    def test_empty_model_list_is_config_error(self):
        client = ModelClient(FakeOracle())
        with pytest.raises(ConfigError):
            client.invoke("p", [], InvokeOptions(stage="design"))

    def test_cache_hit_skips_oracle(self, no_sleep):
        _, sleep = no_sleep
        oracle = FakeOracle({"design": ["first", "second"]})
        client = ModelClient(oracle, TTLCache(), sleep=sleep)
        options = InvokeOptions(stage="design", cache_inputs={"brief": "x"})

        first = client.invoke_structured("prompt one", ["m1"], options, validate=_upper)
        second = client.invoke_structured("prompt two", ["m1"], options, validate=_upper)

        assert first.value == second.value == "FIRST"
        assert second.cached
        assert second.model == "cache"
        assert len(oracle.calls) == 1

    def test_failed_response_is_not_cached(self, no_sleep):
        _, sleep = no_sleep
        cache = TTLCache()
        oracle = FakeOracle({"design": ["bad", "ok"]})
        client = ModelClient(oracle, cache, sleep=sleep)

        with pytest.raises(AllModelsExhaustedError):
            client.invoke_structured("p", ["m1"], InvokeOptions(stage="design"), validate=_upper)
        assert len(cache) == 0

        inv = client.invoke_structured("p", ["m1"], InvokeOptions(stage="design"), validate=_upper)
        assert inv.value == "OK"
        assert len(cache) == 1

    def test_use_cache_false_bypasses(self, no_sleep):
        _, sleep = no_sleep
        oracle = FakeOracle({"critique": ["a", "b"]})
        client = ModelClient(oracle, TTLCache(), sleep=sleep)
        options = InvokeOptions(stage="critique", use_cache=False)

        assert client.invoke("p", ["m1"], options) == "a"
        assert client.invoke("p", ["m1"], options) == "b"

    def test_options_reach_oracle(self):
        oracle = MagicMock()
        oracle.generate.return_value = "{}"
        client = ModelClient(oracle)
        options = InvokeOptions(stage="direction", system_instruction="sys", temperature=0.4, timeout_seconds=30)

        client.invoke("p", ["m1"], options)

        config = oracle.generate.call_args[0][1]
        assert config.model == "m1"
        assert config.system_instruction == "sys"
        assert config.temperature == 0.4
        assert config.timeout_seconds == 30


# ---------------------------------------------------------------------------
# GeminiOracle
# ---------------------------------------------------------------------------

class TestGeminiOracle:
    def test_missing_key_is_config_error(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with pytest.raises(ConfigError):
            GeminiOracle()

    def test_returns_text(self):
        sdk = MagicMock()
        sdk.models.generate_content.return_value = SimpleNamespace(text='{"ok": true}')
        oracle = GeminiOracle(client=sdk)

        assert oracle.generate("p", OracleConfig(model="gemini-2.5-pro")) == '{"ok": true}'
        kwargs = sdk.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-pro"
        assert kwargs["config"].response_mime_type == "application/json"

    def test_throttle_is_flagged(self):
        sdk = MagicMock()
        sdk.models.generate_content.side_effect = RuntimeError("429 RESOURCE_EXHAUSTED: quota")
        oracle = GeminiOracle(client=sdk)

        with pytest.raises(OracleError) as exc:
            oracle.generate("p", OracleConfig(model="gemini-2.5-pro"))
        assert exc.value.throttled

    def test_empty_text_is_error(self):
        sdk = MagicMock()
        sdk.models.generate_content.return_value = SimpleNamespace(text=None)
        oracle = GeminiOracle(client=sdk)

        with pytest.raises(OracleError) as exc:
            oracle.generate("p", OracleConfig(model="gemini-2.5-flash"))
        assert not exc.value.throttled
