from typing import Tuple, Optional

def calc_stop_and_target(
    direction: str,
    entry: float,
    atr: float,
    atr_mult: float,
    reward_mult: float
) -> Tuple[Optional[float], Optional[float]]:
    """Return (stop, target) from ATR multiples; (None, None) when the stop would be unusable."""
    if any(v is None for v in (entry, atr, atr_mult, reward_mult)):
        return None, None
    if atr <= 0 or entry <= 0:
        return None, None

    if direction == "long":
        stop = entry - atr_mult * atr
        if stop <= 0:
            return None, None
        target = entry + reward_mult * (entry - stop)
    elif direction == "short":
        stop = entry + atr_mult * atr
        target = entry - reward_mult * (stop - entry)
    else:
        return None, None

    return float(stop), float(target)


def risk_reward(entry: float, stop: float | None, target: float | None) -> tuple:
    """(riskPercent, rewardPercent, reward/risk), unrounded; Nones when levels are missing."""
    if stop is None or target is None or not entry:
        return None, None, None
    risk_pct = abs(entry - stop) / entry * 100.0
    reward_pct = abs(target - entry) / entry * 100.0
    rr = reward_pct / risk_pct if risk_pct > 0 else None
    return risk_pct, reward_pct, rr
