# data/loader.py
"""
Normalize caller-supplied candles into the OHLCV frame the engine reads.
Accepts Candle records, plain dicts (Binance-style lower-case keys), or a
DataFrame; columns come out as Open, High, Low, Close, Volume (+ Time, Symbol).
"""

from __future__ import annotations
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Iterable
import numpy as np
import pandas as pd

OHLCV = ["Open", "High", "Low", "Close", "Volume"]

_COLUMN_ALIASES = {
    "open": "Open", "o": "Open",
    "high": "High", "h": "High",
    "low": "Low", "l": "Low",
    "close": "Close", "c": "Close", "adj close": "Close",
    "volume": "Volume", "v": "Volume", "vol": "Volume",
    "time": "Time", "timestamp": "Time", "date": "Time", "datetime": "Time", "open_time": "Time",
    "symbol": "Symbol",
}


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    if isinstance(df.columns, pd.MultiIndex):
        df = df.copy()
        df.columns = df.columns.get_level_values(0)
    col_map = {}
    for col in df.columns:
        alias = _COLUMN_ALIASES.get(str(col).strip().lower())
        if alias and alias not in df.columns and alias not in col_map.values():
            col_map[col] = alias
    if col_map:
        df = df.rename(columns=col_map)
    return df


def _validate(df: pd.DataFrame) -> pd.DataFrame:
    for col in OHLCV:
        if col not in df.columns:
            raise ValueError(f"Missing column: {col}")
    out = df.copy()
    for col in OHLCV:
        num = pd.to_numeric(out[col], errors="coerce")
        bad = num.isna() & out[col].notna()
        if bad.any():
            raise ValueError(f"Non-numeric {col} at rows {list(np.flatnonzero(bad.to_numpy())[:5])}")
        out[col] = num.astype("float64")
    vals = out[OHLCV].to_numpy()
    if not np.isfinite(vals).all():
        raise ValueError("Candles contain NaN/inf values")
    if (vals < 0).any():
        raise ValueError("Candles contain negative prices or volumes")
    if (out["Close"] <= 0).any():
        raise ValueError("Close prices must be > 0")
    if (out["High"] < out["Low"]).any():
        rows = list(np.flatnonzero((out["High"] < out["Low"]).to_numpy())[:5])
        raise ValueError(f"High < Low at rows {rows}")
    return out


def candles_to_frame(candles: pd.DataFrame | Iterable) -> pd.DataFrame:
    """Return a validated OHLCV DataFrame (RangeIndex, ascending order as given).

    Raises ValueError on missing columns or malformed numbers.
    """
    if isinstance(candles, pd.DataFrame):
        df = _normalize_columns(candles).reset_index(drop=True)
    else:
        rows = [asdict(c) if is_dataclass(c) else dict(c) for c in candles]
        df = _normalize_columns(pd.DataFrame(rows))
    if df.empty:
        return pd.DataFrame(columns=OHLCV)
    return _validate(df)


def frame_symbol(df: pd.DataFrame, default: str = "UNKNOWN") -> str:
    if "Symbol" in df.columns and len(df):
        sym = df["Symbol"].iloc[0]
        if isinstance(sym, str) and sym.strip():
            return sym.strip().upper()
    return default


def load_candles_csv(path: str | Path, symbol: str | None = None) -> pd.DataFrame:
    """Read an OHLCV CSV (any common column naming) into a validated frame."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Candle file not found: {p.resolve()}")
    df = candles_to_frame(pd.read_csv(p))
    if "Time" in df.columns:
        df = df.sort_values("Time", kind="stable").reset_index(drop=True)
    if symbol:
        df["Symbol"] = symbol.upper()
    elif "Symbol" not in df.columns:
        df["Symbol"] = p.stem.split("_")[0].upper()
    return df
