# strategies/scoring.py
"""Per-indicator scoring and the aggregate the signal composer gates on."""

MAIN_INDICATORS = ("rsi", "macd", "ema", "bb", "trend")


def _na(what: str) -> dict:
    return {"signal": "N/A", "score": 0, "description": f"Not enough data for {what}"}


# ---------- 1) per-indicator sub-analyses ----------
def analyze_rsi(rsi: dict, cfg) -> dict:
    current, previous = rsi.get("current"), rsi.get("previous")
    if current is None:
        return _na("RSI")

    if current < cfg.rsi_oversold:
        signal, score = "LONG", 2
        desc = f"RSI oversold ({current:.1f}) - LONG opportunity"
        if previous is not None and current > previous:
            score = 3
            desc += " + RSI recovering"
    elif current > cfg.rsi_overbought:
        signal, score = "SHORT", -2
        desc = f"RSI overbought ({current:.1f}) - SHORT opportunity"
        if previous is not None and current < previous:
            score = -3
            desc += " + RSI weakening"
    elif current < cfg.rsi_near_oversold:
        signal, score = "SLIGHTLY_BULLISH", 1
        desc = f"RSI {current:.1f} - near oversold"
    elif current > cfg.rsi_near_overbought:
        signal, score = "SLIGHTLY_BEARISH", -1
        desc = f"RSI {current:.1f} - near overbought"
    else:
        signal, score = "NEUTRAL", 0
        desc = f"RSI {current:.1f} - neutral"
    return {"signal": signal, "score": score, "value": current, "description": desc}


def analyze_macd(macd: dict) -> dict:
    """Zero-line cross of the histogram scores +/-3; otherwise side and expansion."""
    line, sig = macd.get("macd"), macd.get("signal")
    hist, prev = macd.get("histogram"), macd.get("prevHistogram")
    if line is None or sig is None or hist is None:
        return _na("MACD")

    if hist > 0 and prev is not None and prev <= 0:
        signal, score, desc = "LONG", 3, "MACD bullish cross - strong LONG signal"
    elif hist < 0 and prev is not None and prev >= 0:
        signal, score, desc = "SHORT", -3, "MACD bearish cross - strong SHORT signal"
    elif hist > 0:
        expanding = prev is not None and hist > prev
        signal, score = "BULLISH", 2 if expanding else 1
        desc = "MACD bullish" + (" and rising" if expanding else "")
    elif hist < 0:
        expanding = prev is not None and hist < prev
        signal, score = "BEARISH", -2 if expanding else -1
        desc = "MACD bearish" + (" and falling" if expanding else "")
    else:
        signal, score, desc = "NEUTRAL", 0, "MACD flat on its signal line"
    return {"signal": signal, "score": score, "macd": line, "signalLine": sig,
            "histogram": hist, "description": desc}


def analyze_ema(ema: dict, price: float, cfg) -> dict:
    fast, slow, trend = ema.get("fast"), ema.get("slow"), ema.get("trend")
    if fast is None or slow is None:
        return _na("EMA")

    if fast > slow:
        signal, score = "BULLISH", 1
        desc = f"EMA{cfg.ema_fast} > EMA{cfg.ema_slow} (bullish)"
        if trend is not None and price > trend:
            score += 1
            desc += f", price > EMA{cfg.ema_trend}"
    else:
        signal, score = "BEARISH", -1
        desc = f"EMA{cfg.ema_fast} < EMA{cfg.ema_slow} (bearish)"
        if trend is not None and price < trend:
            score -= 1
            desc += f", price < EMA{cfg.ema_trend}"
    return {"signal": signal, "score": score, "fast": fast, "slow": slow, "trend": trend,
            "description": desc}


def analyze_bb(bb: dict, price: float) -> dict:
    upper, middle, lower = bb.get("upper"), bb.get("middle"), bb.get("lower")
    if upper is None or lower is None or middle is None:
        return _na("Bollinger Bands")

    span = upper - lower
    if span <= 0:
        return {"signal": "NEUTRAL", "score": 0, "upper": upper, "middle": middle, "lower": lower,
                "width": 0.0, "pricePosition": None, "description": "Bollinger Bands have zero width"}

    width = round(span / middle * 100.0, 2) if middle else None
    position = (price - lower) / span * 100.0

    if price <= lower:
        signal, score, desc = "LONG", 2, "Price at lower band - LONG opportunity (oversold)"
    elif price >= upper:
        signal, score, desc = "SHORT", -2, "Price at upper band - SHORT opportunity (overbought)"
    elif position < 20:
        signal, score, desc = "BULLISH", 1, "Price near lower band - upside potential"
    elif position > 80:
        signal, score, desc = "BEARISH", -1, "Price near upper band - downside potential"
    else:
        signal, score, desc = "NEUTRAL", 0, "Price inside the neutral band zone"
    return {"signal": signal, "score": score, "upper": upper, "middle": middle, "lower": lower,
            "width": width, "pricePosition": round(position, 2), "description": desc}


def analyze_trend(ema: dict, price: float) -> dict:
    fast, slow, trend = ema.get("fast"), ema.get("slow"), ema.get("trend")
    if trend is None or fast is None or slow is None:
        return _na("trend")

    if price > fast > slow > trend:
        signal, score, desc = "STRONG_UPTREND", 2, "Strong uptrend - favours LONG"
    elif price < fast < slow < trend:
        signal, score, desc = "STRONG_DOWNTREND", -2, "Strong downtrend - favours SHORT"
    elif price > trend:
        signal, score, desc = "UPTREND", 1, "Uptrend"
    else:
        signal, score, desc = "DOWNTREND", -1, "Downtrend"
    return {"signal": signal, "score": score, "description": desc}


def analyze_adx(adx, cfg) -> dict:
    """Trend strength band only; ADX never contributes to the score."""
    if adx is None:
        return {"signal": "N/A", "score": 0, "value": None, "description": "No ADX data"}

    if adx >= 50:
        signal, desc = "VERY_STRONG_TREND", f"ADX {adx:.1f} - very strong trend"
    elif adx >= cfg.adx_trend_threshold:
        signal, desc = "STRONG_TREND", f"ADX {adx:.1f} - trend strong enough to trade"
    elif adx >= cfg.sideways_adx_threshold:
        signal, desc = "WEAK_TREND", f"ADX {adx:.1f} - weak trend, be careful"
    else:
        signal, desc = "SIDEWAY", f"ADX {adx:.1f} - sideways market, avoid trading"
    return {"signal": signal, "score": 0, "value": adx, "description": desc}


# ---------- 2) aggregate ----------
def signal_strength(avg_score: float) -> str:
    a = abs(avg_score)
    if a >= 2:
        return "STRONG"
    if a >= 1:
        return "MODERATE"
    return "WEAK"


def analyze_indicators(snapshot: dict, price: float, cfg) -> dict:
    """Score the five main indicators and classify trend strength.

    Returned keys: rsi, macd, ema, bb, trend, adx (sub-analyses), totalScore,
    averageScore, strength, bullishConfluence, bearishConfluence, confluence,
    isSideway, hasTrend.
    """
    analysis = {
        "rsi": analyze_rsi(snapshot["rsi"], cfg),
        "macd": analyze_macd(snapshot["macd"]),
        "ema": analyze_ema(snapshot["ema"], price, cfg),
        "bb": analyze_bb(snapshot["bb"], price),
        "trend": analyze_trend(snapshot["ema"], price),
        "adx": analyze_adx(snapshot.get("adx"), cfg),
    }

    scores = [int(analysis[k]["score"]) for k in MAIN_INDICATORS]
    total = sum(scores)
    avg = total / len(scores)
    bullish = sum(1 for s in scores if s > 0)
    bearish = sum(1 for s in scores if s < 0)

    adx = snapshot.get("adx")
    analysis.update({
        "totalScore": total,
        "averageScore": avg,
        "strength": signal_strength(avg),
        "bullishConfluence": bullish,
        "bearishConfluence": bearish,
        "confluence": max(bullish, bearish),
        "isSideway": adx is not None and adx < cfg.sideways_adx_threshold,
        "hasTrend": adx is not None and adx >= cfg.adx_trend_threshold,
    })
    return analysis
