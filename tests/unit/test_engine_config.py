from __future__ import annotations

import json

import pytest

from storekit.core.config import DEFAULT_BATCH_SIZE, DEFAULT_CALLBACK_POOL_SIZE, EngineConfig

pytestmark = [pytest.mark.unit]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for k in ("STOREKIT_BATCH_SIZE", "STOREKIT_CALLBACK_POOL_SIZE", "STOREKIT_TMP_CONFIG_PATH"):
        monkeypatch.delenv(k, raising=False)


def test_defaults():
    cfg = EngineConfig.load()
    assert cfg.default_batch_size == DEFAULT_BATCH_SIZE
    assert cfg.callback_pool_size == DEFAULT_CALLBACK_POOL_SIZE
    assert cfg.inject_credentials_on_pooled_path is False
    assert cfg.tmp_config_path is None


def test_file_then_env_then_overrides(tmp_path, monkeypatch):
    path = tmp_path / "engine.json"
    path.write_text(json.dumps({"default_batch_size": 50, "callback_pool_size": 4}), encoding="utf-8")
    monkeypatch.setenv("STOREKIT_CALLBACK_POOL_SIZE", "6")
    monkeypatch.setenv("STOREKIT_TMP_CONFIG_PATH", "/shared/job.json")

    cfg = EngineConfig.load(path, overrides={"default_batch_size": 25})

    assert cfg.default_batch_size == 25
    assert cfg.callback_pool_size == 6
    assert cfg.tmp_config_path == "/shared/job.json"


def test_unreadable_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "engine.json"
    path.write_text("{not json", encoding="utf-8")
    assert EngineConfig.load(path).default_batch_size == DEFAULT_BATCH_SIZE


@pytest.mark.parametrize(
    "kwargs",
    [
        {"default_batch_size": 0},
        {"callback_pool_size": 0},
        {"tmp_config_path": "  "},
    ],
)
def test_invalid_values_are_rejected(kwargs):
    with pytest.raises(ValueError):
        EngineConfig(**kwargs)
