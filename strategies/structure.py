# strategies/structure.py
"""Price-structure heuristics read straight off the candles (no indicators)."""
import numpy as np
import pandas as pd

from models.signal import SupportResistance


# ---------- strict fractal pivots ----------
def _find_fractals(high: np.ndarray, low: np.ndarray, width: int) -> tuple[list[int], list[int]]:
    """Indices whose high (low) strictly exceeds (undercuts) `width` bars on each side.
    Bars without a full window on both sides are never pivots.
    """
    highs_idx, lows_idx = [], []
    n = len(high)
    for i in range(width, n - width):
        left_h = high[i - width:i]; right_h = high[i + 1:i + 1 + width]
        left_l = low[i - width:i];  right_l = low[i + 1:i + 1 + width]
        if high[i] > left_h.max() and high[i] > right_h.max():
            highs_idx.append(i)
        if low[i] < left_l.min() and low[i] < right_l.min():
            lows_idx.append(i)
    return highs_idx, lows_idx


def _arrays(df: pd.DataFrame):
    return (
        np.asarray(df["Open"],  dtype="float64").ravel(),
        np.asarray(df["High"],  dtype="float64").ravel(),
        np.asarray(df["Low"],   dtype="float64").ravel(),
        np.asarray(df["Close"], dtype="float64").ravel(),
    )


# ---------- market structure (HH/HL vs LH/LL) ----------
def analyze_market_structure(df: pd.DataFrame, lookback: int = 20, width: int = 2) -> dict:
    if len(df) < lookback:
        return {"trend": "UNKNOWN", "pattern": "N/A", "score": 0, "swingPoints": []}

    _, H, L, _ = _arrays(df.tail(lookback))
    hi_idx, lo_idx = _find_fractals(H, L, width)
    points = [{"type": "HIGH", "price": float(H[i]), "index": i} for i in hi_idx]
    points += [{"type": "LOW", "price": float(L[i]), "index": i} for i in lo_idx]
    # a bar can be both; HIGH sorts first like a left-to-right scan would emit it
    points.sort(key=lambda p: (p["index"], p["type"] != "HIGH"))

    if len(points) < 4:
        return {"trend": "SIDEWAYS", "pattern": "Not enough swing points", "score": 0, "swingPoints": points}

    last = points[-4:]
    highs = [p["price"] for p in last if p["type"] == "HIGH"]
    lows = [p["price"] for p in last if p["type"] == "LOW"]

    trend, pattern, score = "SIDEWAYS", "", 0
    if len(highs) >= 2 and len(lows) >= 2:
        hh = highs[-1] > highs[-2]; lh = highs[-1] < highs[-2]
        hl = lows[-1] > lows[-2];   ll = lows[-1] < lows[-2]
        if hh and hl:
            trend, pattern, score = "UPTREND", "HH+HL", 2
        elif lh and ll:
            trend, pattern, score = "DOWNTREND", "LH+LL", -2
        elif hh and ll:
            pattern = "HH+LL (Expanding)"
        elif lh and hl:
            pattern = "LH+HL (Contracting)"
    return {"trend": trend, "pattern": pattern, "score": score, "swingPoints": last}


# ---------- volume confirmation ----------
def analyze_volume_confirmation(df: pd.DataFrame, lookback: int = 20) -> dict:
    if len(df) < lookback:
        return {"ratio": 0.0, "signal": "N/A", "score": 0, "description": "Not enough volume history"}

    vol = np.asarray(df["Volume"], dtype="float64").ravel()
    avg = float(vol[-lookback:].mean())
    cur = float(vol[-1])
    if avg <= 0:
        return {"ratio": 0.0, "signal": "N/A", "score": 0, "description": "No traded volume in window",
                "avgVolume": avg, "currentVolume": cur}
    ratio = cur / avg

    if ratio >= 2.0:
        signal, score, desc = "VERY_HIGH", 2, "Very high volume - strong confirmation"
    elif ratio >= 1.5:
        signal, score, desc = "HIGH", 1, "High volume - confirmed"
    elif ratio < 0.5:
        signal, score, desc = "LOW", -1, "Low volume - no confirmation"
    else:
        signal, score, desc = "NORMAL", 0, "Normal volume"
    return {"ratio": round(ratio, 2), "signal": signal, "score": score, "description": desc,
            "avgVolume": avg, "currentVolume": cur}


# ---------- order blocks ----------
def find_order_blocks(df: pd.DataFrame, price: float, lookback: int = 30,
                      follow: int = 3, move_pct: float = 0.01, zone_pct: float = 0.05) -> dict:
    """Last opposite candle before a >=1% displacement close, with price back inside its zone.
    The most recent block (by index) wins when both kinds are present.
    """
    if len(df) < lookback:
        return {"type": "NONE", "zone": None, "score": 0, "description": "Not enough candles"}

    O, H, L, C = _arrays(df.tail(lookback))
    bull_ob = bear_ob = None
    for i in range(5, lookback - follow):
        nxt = C[i + 1:i + 1 + follow]
        if C[i] < O[i]:
            moved_up = bool((nxt > H[i] * (1 + move_pct)).any())
            if moved_up and L[i] < price < H[i] * (1 + zone_pct):
                bull_ob = {"high": float(H[i]), "low": float(L[i]), "index": i}
        elif C[i] > O[i]:
            moved_down = bool((nxt < L[i] * (1 - move_pct)).any())
            if moved_down and L[i] * (1 - zone_pct) < price < H[i]:
                bear_ob = {"high": float(H[i]), "low": float(L[i]), "index": i}

    if bull_ob and (not bear_ob or bull_ob["index"] > bear_ob["index"]):
        return {"type": "BULLISH", "zone": bull_ob, "score": 2,
                "description": "Price inside bullish order block - supports LONG"}
    if bear_ob:
        return {"type": "BEARISH", "zone": bear_ob, "score": -2,
                "description": "Price inside bearish order block - supports SHORT"}
    return {"type": "NONE", "zone": None, "score": 0, "description": "No nearby order block"}


# ---------- Fibonacci pullback ----------
def analyze_pullback(df: pd.DataFrame, price: float, lookback: int = 20) -> dict:
    if len(df) < lookback:
        return {"type": "NONE", "depth": 0.0, "score": 0, "description": "Not enough candles"}

    _, H, L, _ = _arrays(df.tail(lookback))
    hi = float(H.max()); lo = float(L.min())
    rng = hi - lo
    if rng <= 0:
        return {"type": "NONE", "depth": 0.0, "score": 0, "description": "Flat range"}

    from_high = hi - price
    from_low = price - lo
    kind, score, desc = "NONE", 0, ""
    if from_high > from_low:
        # retracing down from the high: pullback inside an up-move
        depth = from_high / rng * 100.0
        if 38.2 <= depth <= 61.8:
            kind, score, desc = "BULLISH_PULLBACK", 2, f"Pullback {depth:.1f}% - Fibonacci zone favours LONG"
        elif 23.6 <= depth < 38.2:
            kind, score, desc = "SHALLOW_PULLBACK", 1, f"Shallow pullback {depth:.1f}%"
        elif depth > 61.8:
            kind, score, desc = "DEEP_PULLBACK", -1, f"Deep pullback {depth:.1f}% - reversal risk"
    else:
        depth = from_low / rng * 100.0
        if 38.2 <= depth <= 61.8:
            kind, score, desc = "BEARISH_PULLBACK", -2, f"Pullback {depth:.1f}% - Fibonacci zone favours SHORT"
        elif 23.6 <= depth < 38.2:
            kind, score, desc = "SHALLOW_PULLBACK", -1, f"Shallow pullback {depth:.1f}%"
        elif depth > 61.8:
            kind, score, desc = "DEEP_PULLBACK", 1, f"Deep pullback {depth:.1f}% - possible reversal"
    return {"type": kind, "depth": round(depth, 1), "score": score, "description": desc}


# ---------- support / resistance ----------
def find_support_resistance(df: pd.DataFrame, price: float, lookback: int = 50,
                            width: int = 3, extreme_lookback: int = 20,
                            default_pct: float = 0.03) -> SupportResistance:
    """Swing-fractal levels plus the recent extremes.
    Nearest support is strictly below price, nearest resistance strictly above;
    without a qualifying level they default to price -/+ default_pct.
    """
    if len(df) < lookback:
        return SupportResistance([], [], None, None)

    _, H, L, _ = _arrays(df.tail(lookback))
    hi_idx, lo_idx = _find_fractals(H, L, width)
    supports = [float(L[i]) for i in lo_idx]
    resistances = [float(H[i]) for i in hi_idx]

    _, H20, L20, _ = _arrays(df.tail(extreme_lookback))
    recent_low = float(L20.min()); recent_high = float(H20.max())
    if recent_low not in supports:
        supports.append(recent_low)
    if recent_high not in resistances:
        resistances.append(recent_high)

    below = [s for s in supports if s < price]
    above = [r for r in resistances if r > price]
    # nearest by distance; ties keep the first-seen level
    nearest_sup = min(below, key=lambda s: price - s) if below else None
    nearest_res = min(above, key=lambda r: r - price) if above else None
    sup_src = "SWING" if nearest_sup is not None else "DEFAULT"
    res_src = "SWING" if nearest_res is not None else "DEFAULT"
    if nearest_sup is None:
        nearest_sup = price * (1 - default_pct)
    if nearest_res is None:
        nearest_res = price * (1 + default_pct)

    return SupportResistance(
        supports=sorted(supports, reverse=True),
        resistances=sorted(resistances),
        nearest_support=nearest_sup,
        nearest_resistance=nearest_res,
        support_distance=round((price - nearest_sup) / price * 100.0, 2) if price else None,
        resistance_distance=round((nearest_res - price) / price * 100.0, 2) if price else None,
        support_source=sup_src,
        resistance_source=res_src,
    )
