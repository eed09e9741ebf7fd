import sys
from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from utils.config import PRESETS, EngineConfig, _snake, load_config, load_engine_config, preset


def test_default_preset_matches_defaults():
    cfg = preset("signal-engine-v2")
    assert cfg == EngineConfig()
    assert (cfg.rsi_oversold, cfg.rsi_overbought) == (25.0, 75.0)
    assert (cfg.min_score_for_signal, cfg.min_confluence, cfg.min_candles) == (4, 3, 50)


@pytest.mark.parametrize("name", sorted(PRESETS))
def test_every_preset_validates(name):
    assert preset(name).preset == name


def test_preset_overrides():
    assert preset("api-server-v1").risk_reward_ratio == 2.0
    auto = preset("autotrader-v1")
    assert (auto.sideways_adx_threshold, auto.adx_trend_threshold) == (18.0, 20.0)
    assert preset("worker-v1").atr_fallback is True


def test_unknown_preset():
    with pytest.raises(KeyError):
        preset("nope")


def test_config_is_frozen():
    with pytest.raises(FrozenInstanceError):
        EngineConfig().rsi_period = 7


@pytest.mark.parametrize(
    "name,expected",
    [
        ("rsiOversold", "rsi_oversold"),
        ("minScoreForSignal", "min_score_for_signal"),
        ("bbPeriod", "bb_period"),
        ("min_confluence", "min_confluence"),
    ],
)
def test_snake(name, expected):
    assert _snake(name) == expected


def test_from_dict_accepts_camel_case_and_preset():
    cfg = EngineConfig.from_dict({
        "preset": "api-server-v1",
        "minScoreForSignal": 5,
        "sidewaysADXThreshold": "15",
        "explain_rejects": "no",
        "leverage_tiers": [[8, 4, 15], [6, 3, 10]],
    })
    assert cfg.preset == "api-server-v1"
    assert cfg.rsi_oversold == 30.0
    assert cfg.min_score_for_signal == 5
    assert cfg.sideways_adx_threshold == 15.0
    assert cfg.explain_rejects is False
    assert cfg.leverage_tiers == ((8, 4, 15), (6, 3, 10))


def test_from_dict_unknown_key():
    with pytest.raises(ValueError):
        EngineConfig.from_dict({"rsiPeriodz": 3})


@pytest.mark.parametrize(
    "overrides",
    [
        {"macd_fast": 30},
        {"rsi_period": 0},
        {"rsi_oversold": 80},
        {"sideways_adx_threshold": 30},
        {"min_leverage": 20},
        {"risk_reward_ratio": 0},
        {"min_candles": 1},
    ],
)
def test_validation_errors(overrides):
    with pytest.raises(ValueError):
        EngineConfig.from_dict(overrides)


def test_load_engine_config(tmp_path):
    p = tmp_path / "config.yaml"
    p.write_text(
        "engine:\n"
        "  preset: autotrader-v1\n"
        "  min_confluence: 2\n"
        "logging:\n"
        "  explain_rejects: false\n"
    )
    cfg = load_engine_config(str(p))
    assert cfg.preset == "autotrader-v1"
    assert cfg.min_confluence == 2
    assert cfg.explain_rejects is False

    cfg = load_engine_config(str(p), {"preset": "worker-v1"})
    assert cfg.preset == "worker-v1" and cfg.min_confluence == 2


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "missing.yaml"))


def test_load_config_empty_file(tmp_path):
    p = tmp_path / "empty.yaml"
    p.write_text("")
    assert load_config(str(p)) == {}
    assert load_engine_config(str(p)) == EngineConfig()
