import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from strategies.scoring import (
    analyze_adx,
    analyze_bb,
    analyze_ema,
    analyze_indicators,
    analyze_macd,
    analyze_rsi,
    analyze_trend,
    signal_strength,
)
from utils.config import EngineConfig, preset

CFG = EngineConfig()


@pytest.mark.parametrize(
    "hist,prev,score",
    [
        (0.5, -0.1, 3),
        (0.5, 0.0, 3),
        (-0.5, 0.1, -3),
        (-0.5, 0.0, -3),
        (0.5, 0.3, 2),
        (0.3, 0.5, 1),
        (0.3, None, 1),
        (-0.5, -0.3, -2),
        (-0.3, -0.5, -1),
        (0.0, 0.2, 0),
    ],
)
def test_macd_scores(hist, prev, score):
    m = analyze_macd({"macd": 1.0, "signal": 1.0 - hist, "histogram": hist, "prevHistogram": prev})
    assert m["score"] == score


def test_macd_missing_is_na():
    m = analyze_macd({"macd": None, "signal": None, "histogram": None, "prevHistogram": None})
    assert m["signal"] == "N/A" and m["score"] == 0


@pytest.mark.parametrize(
    "current,previous,score",
    [
        (20.0, None, 2),
        (20.0, 15.0, 3),
        (20.0, 22.0, 2),
        (80.0, None, -2),
        (80.0, 85.0, -3),
        (30.0, None, 1),
        (70.0, None, -1),
        (50.0, 40.0, 0),
        (None, None, 0),
    ],
)
def test_rsi_scores(current, previous, score):
    assert analyze_rsi({"current": current, "previous": previous}, CFG)["score"] == score


def test_rsi_thresholds_follow_preset():
    api = preset("api-server-v1")   # oversold 30
    assert analyze_rsi({"current": 28.0, "previous": None}, api)["score"] == 2
    assert analyze_rsi({"current": 28.0, "previous": None}, CFG)["score"] == 1


@pytest.mark.parametrize(
    "fast,slow,trend,price,score",
    [
        (11, 10, 9, 12, 2),
        (11, 10, 13, 12, 1),
        (10, 11, 13, 12, -2),
        (10, 11, 9, 12, -1),
    ],
)
def test_ema_scores(fast, slow, trend, price, score):
    assert analyze_ema({"fast": fast, "slow": slow, "trend": trend}, price, CFG)["score"] == score


@pytest.mark.parametrize(
    "price,score",
    [
        (90.0, 2),
        (110.0, -2),
        (92.0, 1),
        (108.0, -1),
        (100.0, 0),
    ],
)
def test_bb_scores(price, score):
    assert analyze_bb({"upper": 110.0, "middle": 100.0, "lower": 90.0}, price)["score"] == score


def test_bb_zero_width_is_neutral():
    bb = analyze_bb({"upper": 100.0, "middle": 100.0, "lower": 100.0}, 100.0)
    assert bb["signal"] == "NEUTRAL" and bb["score"] == 0


@pytest.mark.parametrize(
    "price,fast,slow,trend,signal,score",
    [
        (13, 12, 11, 10, "STRONG_UPTREND", 2),
        (9, 10, 11, 12, "STRONG_DOWNTREND", -2),
        (13, 14, 11, 10, "UPTREND", 1),
        (10, 11, 12, 10, "DOWNTREND", -1),
    ],
)
def test_trend(price, fast, slow, trend, signal, score):
    t = analyze_trend({"fast": fast, "slow": slow, "trend": trend}, price)
    assert (t["signal"], t["score"]) == (signal, score)


@pytest.mark.parametrize(
    "value,band",
    [(55.0, "VERY_STRONG_TREND"), (30.0, "STRONG_TREND"), (22.0, "WEAK_TREND"), (10.0, "SIDEWAY"), (None, "N/A")],
)
def test_adx_bands_never_score(value, band):
    a = analyze_adx(value, CFG)
    assert a["signal"] == band and a["score"] == 0


@pytest.mark.parametrize("avg,label", [(2.0, "STRONG"), (-2.4, "STRONG"), (1.0, "MODERATE"), (-0.8, "WEAK"), (0.0, "WEAK")])
def test_signal_strength(avg, label):
    assert signal_strength(avg) == label


def snapshot(adx=30.0, rsi=50.0, hist=0.5, prev_hist=0.2):
    return {
        "rsi": {"current": rsi, "previous": rsi},
        "macd": {"macd": 1.0, "signal": 0.5, "histogram": hist, "prevHistogram": prev_hist},
        "ema": {"fast": 11.0, "slow": 10.0, "trend": 9.0, "ema200": None},
        "bb": {"upper": 14.0, "middle": 10.0, "lower": 6.0},
        "atr": 0.5,
        "adx": adx,
    }


def test_aggregate_bullish():
    a = analyze_indicators(snapshot(), price=12.0, cfg=CFG)
    # rsi 0, macd +2, ema +2, bb 0 (75%), trend +2
    assert a["totalScore"] == 6
    assert a["averageScore"] == pytest.approx(1.2)
    assert a["strength"] == "MODERATE"
    assert (a["bullishConfluence"], a["bearishConfluence"], a["confluence"]) == (3, 0, 3)
    assert a["hasTrend"] is True and a["isSideway"] is False


def test_aggregate_adx_absent_sets_neither_flag():
    a = analyze_indicators(snapshot(adx=None), price=12.0, cfg=CFG)
    assert a["isSideway"] is False and a["hasTrend"] is False


def test_aggregate_sideways_flag():
    a = analyze_indicators(snapshot(adx=12.0), price=12.0, cfg=CFG)
    assert a["isSideway"] is True


@pytest.mark.parametrize("rsi", [10.0, 50.0, 90.0])
@pytest.mark.parametrize("hist", [-1.0, 0.0, 1.0])
def test_confluence_never_exceeds_five(rsi, hist):
    a = analyze_indicators(snapshot(rsi=rsi, hist=hist), price=12.0, cfg=CFG)
    assert a["bullishConfluence"] + a["bearishConfluence"] <= 5
