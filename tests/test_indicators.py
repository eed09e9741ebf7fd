import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from utils.config import EngineConfig
from utils.indicators import (
    adx,
    atr,
    bollinger_bands,
    compute_indicators,
    ema,
    latest_snapshot,
    latest_values,
    macd,
    rsi,
    sma,
    stoch_rsi,
    true_range,
)


def make_df(closes, spread=1.0, volume=1000.0):
    close = pd.Series(closes, dtype="float64")
    return pd.DataFrame({
        "Open": close.shift(1).fillna(close),
        "High": close + spread,
        "Low": close - spread,
        "Close": close,
        "Volume": volume,
    })


def random_walk(n=120, seed=0):
    rng = np.random.default_rng(seed)
    return 100 * np.exp(np.cumsum(rng.normal(0, 0.01, n)))


def test_sma_basic():
    out = sma([1, 2, 3, 4, 5], 3)
    assert np.isnan(out[:2]).all()
    assert out[2:].tolist() == pytest.approx([2.0, 3.0, 4.0])


def test_ema_constant_series_equals_constant_after_warmup():
    out = ema([42.0] * 30, 10)
    assert np.isnan(out[:9]).all()
    assert out[9:] == pytest.approx([42.0] * 21)


def test_ema_shorter_than_period_is_all_nan():
    assert np.isnan(ema([1.0, 2.0, 3.0], 5)).all()


def test_ema_seeded_with_sma():
    data = [1.0, 2.0, 3.0, 4.0, 5.0]
    out = ema(data, 3)
    # seed = mean(1,2,3) = 2, then (4-2)*0.5+2 = 3, (5-3)*0.5+3 = 4
    assert out[2:].tolist() == pytest.approx([2.0, 3.0, 4.0])


def test_rsi_is_100_when_no_losses():
    out = rsi(np.arange(1, 40, dtype=float), 14)
    assert np.isnan(out[:14]).all()
    assert (out[14:] == 100.0).all()


def test_rsi_simple_mean_balanced_moves():
    out = rsi([1, 2, 1, 2, 1], 2)
    assert out[2:].tolist() == pytest.approx([50.0, 50.0, 50.0])


@pytest.mark.parametrize("seed", [0, 1, 2, 3])
def test_rsi_bounded(seed):
    out = rsi(random_walk(200, seed), 14)
    vals = out[np.isfinite(out)]
    assert len(vals) == 200 - 14
    assert ((vals >= 0) & (vals <= 100)).all()


def test_bollinger_uses_population_std():
    bb = bollinger_bands([1, 2, 3, 4, 5], period=5, std_dev=1.0)
    assert bb["middle"][-1] == pytest.approx(3.0)
    assert bb["upper"][-1] == pytest.approx(3.0 + np.sqrt(2.0))
    assert bb["lower"][-1] == pytest.approx(3.0 - np.sqrt(2.0))


def test_bollinger_zero_width_on_flat_prices():
    bb = bollinger_bands([0.00001234] * 25, period=20)
    assert bb["upper"][-1] == pytest.approx(bb["lower"][-1])


def test_true_range_first_bar_uses_high_low():
    tr = true_range([11, 12], [9, 11.5], [10, 12])
    assert tr[0] == pytest.approx(2.0)
    assert tr[1] == pytest.approx(2.0)   # |12 - prev close 10|


def test_atr_warmup():
    df = make_df(random_walk(60))
    out = atr(df["High"], df["Low"], df["Close"], 14)
    assert np.isnan(out[:13]).all() and np.isfinite(out[13:]).all()


def test_macd_histogram_is_line_minus_signal():
    m = macd(random_walk(100), 12, 26, 9)
    first = np.flatnonzero(np.isfinite(m["signal"]))[0]
    assert first == 25 + 8
    np.testing.assert_allclose(m["histogram"][first:], m["macd"][first:] - m["signal"][first:])


def test_adx_zero_on_flat_candles():
    n, period = 60, 14
    flat = np.full(n, 100.0)
    out = adx(flat, flat, flat, period)
    assert np.isnan(out["adx"][:2 * period - 1]).all()
    assert (out["adx"][2 * period - 1:] == 0.0).all()


def test_adx_trending_market():
    closes = np.arange(100.0, 200.0)
    out = adx(closes + 1, closes - 1, closes, 14)
    assert out["adx"][-1] > 25
    assert out["plus_di"][-1] > out["minus_di"][-1]


@pytest.mark.parametrize("seed", [0, 5])
def test_adx_bounded(seed):
    df = make_df(random_walk(150, seed), spread=0.5)
    out = adx(df["High"], df["Low"], df["Close"], 14)
    vals = out["adx"][np.isfinite(out["adx"])]
    assert ((vals >= 0) & (vals <= 100)).all()


def test_stoch_rsi_flat_rsi_reads_50():
    out = stoch_rsi(np.arange(1.0, 60.0))  # RSI pinned at 100
    k = out["k"][np.isfinite(out["k"])]
    assert len(k) and (k == 50.0).all()


def test_compute_indicators_lengths_match_input():
    df = make_df(random_walk(120))
    ind = compute_indicators(df, EngineConfig())
    flat = []
    for v in ind.values():
        flat.extend(v.values() if isinstance(v, dict) else [v])
    assert all(len(s) == len(df) for s in flat)


def test_compute_indicators_rejects_empty_frame():
    with pytest.raises(ValueError):
        compute_indicators(pd.DataFrame(columns=["Open", "High", "Low", "Close", "Volume"]), EngineConfig())


def test_latest_values_skips_nan_and_pads():
    assert latest_values([np.nan, 1.0, 2.0, np.nan]) == [2.0, 1.0]
    assert latest_values([np.nan, 3.0]) == [3.0, None]
    assert latest_values([np.nan, np.nan]) == [None, None]


def test_snapshot_missing_long_ema_is_none():
    df = make_df(random_walk(120))
    snap = latest_snapshot(compute_indicators(df, EngineConfig()))
    assert snap["ema"]["ema200"] is None
    assert snap["rsi"]["previous"] is not None
    assert set(snap) == {"rsi", "macd", "ema", "bb", "atr", "adx", "plusDI", "minusDI", "stochRsi", "volumeMA"}
