"""
risk.manager
------------
Level and leverage helpers for the signal composer.
- compute_levels  : stop/target from the nearest support/resistance (ATR stop optional)
- suggest_leverage: tiered leverage capped by a target account-risk percent
"""

from math import floor, isfinite
from typing import Tuple

from models.signal import LONG, SHORT, SupportResistance
from risk.position import calc_stop_and_target


def _usable(level, entry: float, below: bool) -> bool:
    if level is None or not isfinite(level) or level <= 0:
        return False
    return level < entry if below else level > entry


def stop_level_available(direction: str, entry: float, sr: SupportResistance | None) -> bool:
    """LONG needs a finite support below entry; SHORT a finite resistance above it."""
    if sr is None:
        return False
    if direction == LONG:
        return _usable(sr.nearest_support, entry, below=True)
    if direction == SHORT:
        return _usable(sr.nearest_resistance, entry, below=False)
    return False


def compute_levels(
    direction: str,
    entry: float,
    sr: SupportResistance,
    cfg,
    atr: float | None = None,
) -> Tuple[float, float] | Tuple[None, None]:
    """
    Stop beyond the nearest level, target at the opposite level.
      long : stop = support*(1-sl_buffer), widened to at least min_stop_pct below entry;
             target = resistance*(1-tp_buffer) if resistance > entry*(1+min_target_pct),
             else entry + R:R * (entry-stop); re-forced to the R:R target if still too close.
      short: mirrored around resistance/support.
    With cfg.atr_fallback, a DEFAULT (non-swing) stop-side level is replaced by an ATR stop.
    Returns (None, None) when the stop-side level is unusable.
    """
    if not stop_level_available(direction, entry, sr):
        return None, None

    rr = cfg.risk_reward_ratio
    min_dist = entry * cfg.min_stop_pct

    if direction == LONG:
        stop = sr.nearest_support * (1 - cfg.sl_buffer_pct)
        if cfg.atr_fallback and sr.support_source == "DEFAULT":
            atr_stop, _ = calc_stop_and_target("long", entry, atr, cfg.atr_multiplier_long, rr)
            if atr_stop is not None:
                stop = atr_stop
        if entry - stop < min_dist:
            stop = entry - min_dist

        dist = entry - stop
        res = sr.nearest_resistance
        if res is not None and isfinite(res) and res > entry * (1 + cfg.min_target_pct):
            target = res * (1 - cfg.tp_buffer_pct)
        else:
            target = entry + dist * rr
        if target <= entry * (1 + cfg.min_target_pct):
            target = entry + dist * rr
        return float(stop), float(target)

    stop = sr.nearest_resistance * (1 + cfg.sl_buffer_pct)
    if cfg.atr_fallback and sr.resistance_source == "DEFAULT":
        atr_stop, _ = calc_stop_and_target("short", entry, atr, cfg.atr_multiplier_short, rr)
        if atr_stop is not None:
            stop = atr_stop
    if stop - entry < min_dist:
        stop = entry + min_dist

    dist = stop - entry
    sup = sr.nearest_support
    if sup is not None and isfinite(sup) and 0 < sup < entry * (1 - cfg.min_target_pct):
        target = sup * (1 + cfg.tp_buffer_pct)
    else:
        target = entry - dist * rr
    if target >= entry * (1 - cfg.min_target_pct):
        target = entry - dist * rr
    return float(stop), float(target)


def suggest_leverage(total_score: int, confluence: int, risk_percent: float, cfg) -> Tuple[int, str]:
    """
    desired  = first tier whose (|score|, confluence) minimums are met, else default_leverage
    computed = floor(target_risk_percent / risk_percent)
    leverage = clamp(min(desired, computed), min_leverage, max_leverage)
    Risk label is graded on risk_percent * leverage (account % lost if stopped).
    """
    score = abs(total_score)
    desired = cfg.default_leverage
    for min_score, min_conf, lev in cfg.leverage_tiers:
        if score >= min_score and confluence >= min_conf:
            desired = lev
            break

    if risk_percent and risk_percent > 0:
        computed = floor(cfg.target_risk_percent / risk_percent)
    else:
        computed = cfg.max_leverage
    leverage = int(min(max(min(desired, computed), cfg.min_leverage), cfg.max_leverage))

    account_risk = (risk_percent or 0.0) * leverage
    if account_risk >= 35:
        label = "HIGH"
    elif account_risk >= 25:
        label = "MODERATE"
    else:
        label = "LOW"
    return leverage, label
