# strategies/signal_engine.py
"""
Candles -> indicators -> snapshot -> structure -> scores -> LONG / SHORT / WAIT.

`analyze` is a pure function of (candles, config): nothing is cached between
calls and the only side effect is the optional reject explain-log.
"""
from datetime import datetime, timezone

import pandas as pd

from data.loader import candles_to_frame, frame_symbol
from models.signal import LONG, SHORT, WAIT, AnalysisResult, InsufficientData, Signal, SupportResistance
from risk.manager import compute_levels, stop_level_available, suggest_leverage
from risk.position import risk_reward
from strategies.scoring import MAIN_INDICATORS, analyze_indicators
from strategies.structure import (
    analyze_market_structure,
    analyze_pullback,
    analyze_volume_confirmation,
    find_order_blocks,
    find_support_resistance,
)
from utils.config import EngineConfig, preset, DEFAULT_PRESET
from utils.indicators import compute_indicators, latest_snapshot
from utils.logger import explain_log


def _resolve_config(config) -> EngineConfig:
    if config is None:
        return preset(DEFAULT_PRESET)
    if isinstance(config, EngineConfig):
        return config.validate()
    if isinstance(config, str):
        return preset(config)
    return EngineConfig.from_dict(config)


def _r2(x):
    return None if x is None else round(float(x), 2)


# ---------- 1) reasons ----------
def _directional_reasons(analysis: dict, sign: int) -> list[str]:
    return [analysis[k]["description"] for k in MAIN_INDICATORS if analysis[k]["score"] * sign > 0]


def _level_lines(sr: SupportResistance) -> list[str]:
    def _fmt(v):
        return f"{v:.4f}" if v is not None else "N/A"
    return [f"Support: {_fmt(sr.nearest_support)}", f"Resistance: {_fmt(sr.nearest_resistance)}"]


def _headline(direction: str, near_level: bool, score: int, confluence: int) -> str:
    level = "SUPPORT" if direction == LONG else "RESISTANCE"
    if near_level:
        return f"{direction} at {level} - high win rate setup"
    if abs(score) >= 7 and confluence >= 4:
        return f"VERY STRONG {direction} signal"
    return f"Good {direction} signal"


# ---------- 2) gates ----------
def _rejections(analysis: dict, price: float, sr: SupportResistance, cfg: EngineConfig) -> tuple[list[str], list[tuple]]:
    """Evaluate every gate; returns (reason lines, (log key, details) pairs)."""
    total = analysis["totalScore"]
    reasons, log = [], []

    if analysis["isSideway"]:
        reasons.append(f"Sideways market (ADX < {cfg.sideways_adx_threshold:g}) - do not trade")
        log.append(("sideways", {"adx": _r2(analysis["adx"]["value"]), "min": cfg.sideways_adx_threshold}))

    if abs(total) < cfg.min_score_for_signal:
        reasons.append(f"Score ({total}) not strong enough (need >= {cfg.min_score_for_signal} "
                       f"or <= -{cfg.min_score_for_signal})")
        log.append((f"score<{cfg.min_score_for_signal}", {"score": total}))

    confluence = analysis["bullishConfluence"] if total > 0 else analysis["bearishConfluence"]
    if confluence < cfg.min_confluence:
        reasons.append(f"Only {confluence} indicators agree (need >= {cfg.min_confluence})")
        log.append((f"confluence<{cfg.min_confluence}", {"confluence": confluence, "score": total}))

    if total > 0 and not stop_level_available(LONG, price, sr):
        reasons.append("No clear support to place the stop-loss")
        log.append(("no-support", {"support": sr.nearest_support, "price": price}))
    elif total < 0 and not stop_level_available(SHORT, price, sr):
        reasons.append("No clear resistance to place the stop-loss")
        log.append(("no-resistance", {"resistance": sr.nearest_resistance, "price": price}))

    return reasons, log


# ---------- 3) compose ----------
def _wait(analysis: dict, price: float, rejections: list[str], cfg: EngineConfig,
          atr: float | None) -> Signal:
    reasons = ["NO SIGNAL - stay out of the market"]
    reasons += rejections if rejections else ["Indicators not aligned enough"]
    reasons.append(f"Score: {analysis['totalScore']} | Bullish: {analysis['bullishConfluence']} "
                   f"| Bearish: {analysis['bearishConfluence']}")
    if not analysis["hasTrend"] and not analysis["isSideway"]:
        reasons.append(f"Weak trend - wait for ADX above {cfg.adx_trend_threshold:g}")
    return Signal(
        action=WAIT, confidence=0.0, strength=analysis["strength"], entry=price,
        stop_loss=None, take_profit=None, risk_percent=None, reward_percent=None, risk_reward=None,
        leverage=cfg.min_leverage, leverage_risk="LOW",
        total_score=analysis["totalScore"], average_score=_r2(analysis["averageScore"]),
        reasons=reasons, atr=atr, atr_percent=_r2(atr / price * 100.0) if atr else None,
    )


def generate_signal(analysis: dict, price: float, sr: SupportResistance, cfg: EngineConfig,
                    atr: float | None = None, symbol: str = "UNKNOWN") -> Signal:
    """Run the gate pipeline and, when every gate passes, derive levels and leverage."""
    total = analysis["totalScore"]
    rejections, log = _rejections(analysis, price, sr, cfg)

    if total == 0 or rejections:
        for key, details in log:
            explain_log(symbol, key, details, cfg.explain_rejects)
        return _wait(analysis, price, rejections, cfg, atr)

    direction = LONG if total > 0 else SHORT
    confluence = analysis["bullishConfluence"] if direction == LONG else analysis["bearishConfluence"]

    stop, target = compute_levels(direction, price, sr, cfg, atr=atr)
    if stop is None:
        explain_log(symbol, "levels-none", {"direction": direction, "price": price}, cfg.explain_rejects)
        return _wait(analysis, price, ["Could not derive stop-loss / take-profit levels"], cfg, atr)

    if direction == LONG:
        near = (price - sr.nearest_support) / price < cfg.near_level_pct
    else:
        near = (sr.nearest_resistance - price) / price < cfg.near_level_pct

    confidence = min(abs(total) / 10 * 100 + 30 + confluence * 5, 95.0)
    if near:
        confidence = min(confidence + 10, 95.0)

    risk_pct, reward_pct, rr = risk_reward(price, stop, target)
    leverage, lev_risk = suggest_leverage(total, confluence, risk_pct, cfg)

    side = "bullish" if direction == LONG else "bearish"
    reasons = [_headline(direction, near, total, confluence)]
    reasons += _directional_reasons(analysis, 1 if direction == LONG else -1)
    reasons.append(f"Confluence: {confluence}/{len(MAIN_INDICATORS)} indicators {side}")
    reasons += _level_lines(sr)
    reasons.append(f"Leverage: {leverage}x ({lev_risk} risk)")
    reasons.append(f"SL {risk_pct:.2f}% x {leverage}x = ~{risk_pct * leverage:.0f}% loss if stopped")

    return Signal(
        action=direction,
        confidence=round(float(confidence), 1),
        strength=analysis["strength"],
        entry=price,
        stop_loss=stop,
        take_profit=target,
        risk_percent=_r2(risk_pct),
        reward_percent=_r2(reward_pct),
        risk_reward=_r2(rr),
        leverage=leverage,
        leverage_risk=lev_risk,
        total_score=total,
        average_score=_r2(analysis["averageScore"]),
        reasons=reasons,
        atr=atr,
        atr_percent=_r2(atr / price * 100.0) if atr else None,
    )


# ---------- 4) entry point ----------
def analyze(candles, config=None, symbol: str | None = None) -> AnalysisResult | InsufficientData:
    """
    Analyze an ascending window of candles.

    `candles`: DataFrame (any common OHLCV column naming), Candle records or dicts.
    `config` : EngineConfig, a preset name, a mapping of overrides, or None.
    Returns InsufficientData (never raises) when the window is shorter than
    cfg.min_candles; malformed candles raise ValueError.
    """
    cfg = _resolve_config(config)
    df = candles_to_frame(candles)
    sym = (symbol or frame_symbol(df)).upper()

    if len(df) < cfg.min_candles:
        return InsufficientData(received=len(df), required=cfg.min_candles, symbol=sym)

    price = float(df["Close"].iloc[-1])
    snapshot = latest_snapshot(compute_indicators(df, cfg))

    structure = analyze_market_structure(df)
    volume = analyze_volume_confirmation(df)
    order_block = find_order_blocks(df, price)
    pullback = analyze_pullback(df, price)
    sr = find_support_resistance(df, price)

    analysis = analyze_indicators(snapshot, price, cfg)
    signal = generate_signal(analysis, price, sr, cfg, atr=snapshot["atr"], symbol=sym)

    return AnalysisResult(
        timestamp=datetime.now(timezone.utc).isoformat(),
        symbol=sym,
        current_price=price,
        indicators=snapshot,
        analysis=analysis,
        signal=signal,
        market_structure=structure,
        volume_confirmation=volume,
        order_block=order_block,
        pullback=pullback,
        support_resistance=sr,
    )


def analyze_frame(df: pd.DataFrame, config=None) -> AnalysisResult | InsufficientData:
    """Convenience for scan loops holding a frame with a Symbol column."""
    return analyze(df, config=config, symbol=frame_symbol(df))
