"""
utils.indicators
----------------
Stateless indicator transforms over price/volume arrays.

Every function returns float64 arrays the same length as its input, with NaN
for entries whose warm-up has not elapsed:
  sma / ema / bollinger : period-1 leading NaNs
  rsi                   : period leading NaNs (first close has no change)
  atr                   : period-1 (true range starts at the first candle)
  adx                   : 2*period-1 (first candle dropped, then two Wilder passes)
"""

import numpy as np
import pandas as pd
import talib
from numpy.lib.stride_tricks import sliding_window_view


def _as_float(values) -> np.ndarray:
    return np.ascontiguousarray(np.asarray(values, dtype="float64").ravel())


def _nan_like(arr: np.ndarray) -> np.ndarray:
    return np.full(len(arr), np.nan)


def _on_valid_tail(arr: np.ndarray, fn) -> np.ndarray:
    """Apply `fn` to the trailing run of finite values and re-align to arr's index space."""
    out = _nan_like(arr)
    finite = np.isfinite(arr)
    if not finite.any():
        return out
    last_gap = np.flatnonzero(~finite)
    start = int(last_gap[-1]) + 1 if len(last_gap) else 0
    if start >= len(arr):
        return out
    out[start:] = fn(arr[start:])
    return out


# ---------- moving averages ----------
def sma(data, period: int) -> np.ndarray:
    """Arithmetic mean of the trailing `period` values."""
    arr = _as_float(data)
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")
    if period == 1:
        return arr.copy()
    if len(arr) < period:
        return _nan_like(arr)
    return talib.SMA(arr, timeperiod=period)


def ema(data, period: int) -> np.ndarray:
    """EMA seeded with the SMA of the first `period` values (TA-Lib default seeding).

    ema[i] = (x[i] - ema[i-1]) * 2/(period+1) + ema[i-1]
    """
    arr = _as_float(data)
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")
    if period == 1:
        return arr.copy()
    if len(arr) < period:
        return _nan_like(arr)
    return talib.EMA(arr, timeperiod=period)


def volume_ma(volumes, period: int = 20) -> np.ndarray:
    return sma(volumes, period)


# ---------- oscillators ----------
def rsi(closes, period: int = 14) -> np.ndarray:
    """RSI from a *simple* trailing mean of gains/losses, recomputed at every bar.

    Not Wilder's recursive average (adx uses that).
    RSI is 100 whenever the trailing average loss is exactly 0.
    """
    c = _as_float(closes)
    n = len(c)
    out = np.full(n, np.nan)
    if period < 1 or n < period + 1:
        return out

    d = np.diff(c)
    gains = np.clip(d, 0, None)
    losses = np.clip(-d, 0, None)

    # window j covers diffs j..j+period-1, i.e. closes up to index j+period
    avg_gain = sliding_window_view(gains, period).mean(axis=1)
    avg_loss = sliding_window_view(losses, period).mean(axis=1)

    vals = np.full(len(avg_gain), 100.0)
    nz = avg_loss != 0
    rs = avg_gain[nz] / avg_loss[nz]
    vals[nz] = 100.0 - (100.0 / (1.0 + rs))
    out[period:] = vals
    return out


def stoch_rsi(closes, rsi_period: int = 14, stoch_period: int = 14, k_period: int = 3, d_period: int = 3) -> dict:
    """Stochastic RSI. Flat RSI windows read 50. %K/%D are SMAs re-aligned to the candle index."""
    r = rsi(closes, rsi_period)

    def _raw(valid: np.ndarray) -> np.ndarray:
        res = np.full(len(valid), np.nan)
        if len(valid) < stoch_period:
            return res
        win = sliding_window_view(valid, stoch_period)
        lo = win.min(axis=1)
        hi = win.max(axis=1)
        cur = valid[stoch_period - 1:]
        span = hi - lo
        vals = np.full(len(cur), 50.0)
        nz = span != 0
        vals[nz] = (cur[nz] - lo[nz]) / span[nz] * 100.0
        res[stoch_period - 1:] = vals
        return res

    raw = _on_valid_tail(r, _raw)
    k = _on_valid_tail(raw, lambda v: sma(v, k_period))
    d = _on_valid_tail(k, lambda v: sma(v, d_period))
    return {"k": k, "d": d, "raw": raw}


def macd(closes, fast: int = 12, slow: int = 26, signal: int = 9) -> dict:
    """MACD line, signal line (EMA of the valid MACD sub-range) and histogram."""
    c = _as_float(closes)
    line = ema(c, fast) - ema(c, slow)
    sig = _on_valid_tail(line, lambda v: ema(v, signal))
    hist = line - sig
    return {"macd": line, "signal": sig, "histogram": hist}


# ---------- volatility ----------
def bollinger_bands(closes, period: int = 20, std_dev: float = 2.0) -> dict:
    """SMA middle band ± std_dev * population standard deviation of the trailing window."""
    c = _as_float(closes)
    middle = sma(c, period)
    upper = _nan_like(c)
    lower = _nan_like(c)
    if len(c) >= period:
        std = sliding_window_view(c, period).std(axis=1)  # ddof=0
        upper[period - 1:] = middle[period - 1:] + std_dev * std
        lower[period - 1:] = middle[period - 1:] - std_dev * std
    return {"upper": upper, "middle": middle, "lower": lower}


def true_range(high, low, close) -> np.ndarray:
    """max(high-low, |high-prev_close|, |low-prev_close|); first bar uses high-low."""
    h = _as_float(high)
    l = _as_float(low)
    c = _as_float(close)
    tr = h - l
    if len(c) > 1:
        pc = c[:-1]
        tr[1:] = np.maximum(tr[1:], np.maximum(np.abs(h[1:] - pc), np.abs(l[1:] - pc)))
    return tr


def atr(high, low, close, period: int = 14) -> np.ndarray:
    """ATR as an EMA of true range."""
    return ema(true_range(high, low, close), period)


# ---------- trend strength ----------
def wilder_smooth(values, period: int) -> np.ndarray:
    """Wilder's recursive average, seeded with the simple mean of the first `period` values.

    s[i] = s[i-1] - s[i-1]/period + x[i]/period

    This is the classic running-sum form divided by `period`, so DI ratios are
    identical to the sum form while the ADX stays on the 0..100 scale.
    """
    x = _as_float(values)
    out = _nan_like(x)
    if period < 1 or len(x) < period:
        return out
    s = float(np.mean(x[:period]))
    out[period - 1] = s
    for i in range(period, len(x)):
        s = s - s / period + x[i] / period
        out[i] = s
    return out


def adx(high, low, close, period: int = 14) -> dict:
    """Average Directional Index with +DI/-DI, aligned to the candle index."""
    h = _as_float(high)
    l = _as_float(low)
    c = _as_float(close)
    n = len(c)
    out = {"adx": np.full(n, np.nan), "plus_di": np.full(n, np.nan), "minus_di": np.full(n, np.nan)}
    if n < 2:
        return out

    up = h[1:] - h[:-1]
    down = l[:-1] - l[1:]
    plus_dm = np.where((up > down) & (up > 0), up, 0.0)
    minus_dm = np.where((down > up) & (down > 0), down, 0.0)
    tr = true_range(h, l, c)[1:]

    s_tr = wilder_smooth(tr, period)
    s_pdm = wilder_smooth(plus_dm, period)
    s_mdm = wilder_smooth(minus_dm, period)

    valid = np.isfinite(s_tr)
    pdi = np.full(len(tr), np.nan)
    mdi = np.full(len(tr), np.nan)
    pos = valid & (s_tr > 0)
    pdi[valid] = 0.0
    mdi[valid] = 0.0
    pdi[pos] = 100.0 * s_pdm[pos] / s_tr[pos]
    mdi[pos] = 100.0 * s_mdm[pos] / s_tr[pos]

    di_sum = pdi + mdi
    dx = np.full(len(tr), np.nan)
    dx[valid] = 0.0
    nz = valid & (di_sum > 0)
    dx[nz] = 100.0 * np.abs(pdi[nz] - mdi[nz]) / di_sum[nz]

    adx_vals = _on_valid_tail(dx, lambda v: wilder_smooth(v, period))

    out["adx"][1:] = adx_vals
    out["plus_di"][1:] = pdi
    out["minus_di"][1:] = mdi
    return out


# ---------- bundle + snapshot ----------
def compute_indicators(df: pd.DataFrame, cfg) -> dict:
    """Compute every series the signal engine reads. `cfg` is an EngineConfig."""
    if df.empty:
        raise ValueError("Empty DataFrame")

    close = np.asarray(df["Close"],  dtype="float64").ravel()
    high  = np.asarray(df["High"],   dtype="float64").ravel()
    low   = np.asarray(df["Low"],    dtype="float64").ravel()
    vol   = np.asarray(df["Volume"], dtype="float64").ravel()

    return {
        "rsi": rsi(close, cfg.rsi_period),
        "macd": macd(close, cfg.macd_fast, cfg.macd_slow, cfg.macd_signal),
        "ema_fast": ema(close, cfg.ema_fast),
        "ema_slow": ema(close, cfg.ema_slow),
        "ema_trend": ema(close, cfg.ema_trend),
        "ema_long": ema(close, cfg.ema_long),
        "bb": bollinger_bands(close, cfg.bb_period, cfg.bb_std_dev),
        "atr": atr(high, low, close, cfg.atr_period),
        "adx": adx(high, low, close, cfg.adx_period),
        "stoch_rsi": stoch_rsi(close, cfg.stoch_rsi_period, cfg.stoch_period, cfg.stoch_k, cfg.stoch_d),
        "volume_ma": volume_ma(vol, cfg.volume_ma_period),
    }


def latest_values(series, count: int = 2) -> list:
    """Last `count` computed (finite) values, newest first; None where missing.

    "previous" is therefore the prior *computed* value, not necessarily the prior bar.
    """
    arr = _as_float(series)
    idx = np.flatnonzero(np.isfinite(arr))[-count:][::-1]
    vals = [float(arr[i]) for i in idx]
    return vals + [None] * (count - len(vals))


def latest(series):
    return latest_values(series, 1)[0]


def latest_snapshot(ind: dict) -> dict:
    rsi_cur, rsi_prev = latest_values(ind["rsi"])
    hist_cur, hist_prev = latest_values(ind["macd"]["histogram"])
    return {
        "rsi": {"current": rsi_cur, "previous": rsi_prev},
        "macd": {
            "macd": latest(ind["macd"]["macd"]),
            "signal": latest(ind["macd"]["signal"]),
            "histogram": hist_cur,
            "prevHistogram": hist_prev,
        },
        "ema": {
            "fast": latest(ind["ema_fast"]),
            "slow": latest(ind["ema_slow"]),
            "trend": latest(ind["ema_trend"]),
            "ema200": latest(ind["ema_long"]),
        },
        "bb": {
            "upper": latest(ind["bb"]["upper"]),
            "middle": latest(ind["bb"]["middle"]),
            "lower": latest(ind["bb"]["lower"]),
        },
        "atr": latest(ind["atr"]),
        "adx": latest(ind["adx"]["adx"]),
        "plusDI": latest(ind["adx"]["plus_di"]),
        "minusDI": latest(ind["adx"]["minus_di"]),
        "stochRsi": {"k": latest(ind["stoch_rsi"]["k"]), "d": latest(ind["stoch_rsi"]["d"])},
        "volumeMA": latest(ind["volume_ma"]),
    }
