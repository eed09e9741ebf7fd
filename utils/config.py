from dataclasses import dataclass, fields, replace
from pathlib import Path
import re
import yaml

def load_config(path: str = "config.yaml") -> dict:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {p.resolve()}")
    with p.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


DEFAULT_PRESET = "signal-engine-v2"


@dataclass(frozen=True)
class EngineConfig:
    preset: str = DEFAULT_PRESET

    # RSI
    rsi_period: int = 14
    rsi_oversold: float = 25.0
    rsi_overbought: float = 75.0
    rsi_near_oversold: float = 35.0
    rsi_near_overbought: float = 65.0

    # MACD
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9

    # EMA stack (ema_long only reported, never scored)
    ema_fast: int = 9
    ema_slow: int = 21
    ema_trend: int = 50
    ema_long: int = 200

    # Bollinger
    bb_period: int = 20
    bb_std_dev: float = 2.0

    # ATR (stops only when atr_fallback is on)
    atr_period: int = 14
    atr_multiplier_long: float = 2.5
    atr_multiplier_short: float = 2.5
    atr_fallback: bool = False

    # ADX gate
    adx_period: int = 14
    adx_trend_threshold: float = 25.0
    sideways_adx_threshold: float = 20.0

    # Stoch RSI / volume (reported only)
    stoch_rsi_period: int = 14
    stoch_period: int = 14
    stoch_k: int = 3
    stoch_d: int = 3
    volume_ma_period: int = 20

    # Signal quality gates
    min_score_for_signal: int = 4
    min_confluence: int = 3
    min_candles: int = 50

    # Levels
    risk_reward_ratio: float = 1.5
    min_stop_pct: float = 0.015
    sl_buffer_pct: float = 0.003
    tp_buffer_pct: float = 0.002
    min_target_pct: float = 0.005
    near_level_pct: float = 0.015

    # Leverage
    target_risk_percent: float = 25.0
    min_leverage: int = 5
    max_leverage: int = 15
    default_leverage: int = 8
    # (min |score|, min confluence, leverage), checked in order
    leverage_tiers: tuple = ((7, 4, 15), (5, 3, 12), (4, 3, 10))

    explain_rejects: bool = True

    def validate(self) -> "EngineConfig":
        periods = ("rsi_period", "macd_fast", "macd_slow", "macd_signal", "ema_fast", "ema_slow",
                   "ema_trend", "ema_long", "bb_period", "atr_period", "adx_period",
                   "stoch_rsi_period", "stoch_period", "stoch_k", "stoch_d", "volume_ma_period")
        for name in periods:
            if int(getattr(self, name)) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")
        if self.macd_fast >= self.macd_slow:
            raise ValueError(f"macd_fast ({self.macd_fast}) must be < macd_slow ({self.macd_slow})")
        if not (0 <= self.rsi_oversold <= self.rsi_near_oversold <= self.rsi_near_overbought <= self.rsi_overbought <= 100):
            raise ValueError("RSI thresholds must satisfy 0 <= oversold <= near_oversold <= near_overbought <= overbought <= 100")
        if self.sideways_adx_threshold > self.adx_trend_threshold:
            raise ValueError("sideways_adx_threshold must not exceed adx_trend_threshold")
        if self.risk_reward_ratio <= 0:
            raise ValueError(f"risk_reward_ratio must be > 0, got {self.risk_reward_ratio}")
        if self.min_stop_pct <= 0 or self.min_target_pct <= 0:
            raise ValueError("min_stop_pct and min_target_pct must be > 0")
        if self.target_risk_percent <= 0:
            raise ValueError(f"target_risk_percent must be > 0, got {self.target_risk_percent}")
        if not (1 <= self.min_leverage <= self.max_leverage):
            raise ValueError(f"leverage bounds invalid: [{self.min_leverage}, {self.max_leverage}]")
        if self.min_candles < 2:
            raise ValueError(f"min_candles must be >= 2, got {self.min_candles}")
        return self

    @classmethod
    def from_dict(cls, d: dict | None) -> "EngineConfig":
        """Build from a flat mapping. `preset` picks the base; other keys override it.

        Keys may be snake_case or the camelCase names used by API callers
        (e.g. minScoreForSignal, sidewaysADXThreshold).
        """
        d = dict(d or {})
        base = preset(str(d.pop("preset", DEFAULT_PRESET)))
        known = {f.name: f for f in fields(cls)}
        overrides = {}
        for k, v in d.items():
            name = _ALIASES.get(k, _snake(k))
            if name not in known:
                raise ValueError(f"Unknown engine option: {k}")
            overrides[name] = _coerce(getattr(base, name), v)
        return replace(base, **overrides).validate()


def _snake(name: str) -> str:
    s = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    return re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s).lower()


def _coerce(current, value):
    if isinstance(current, bool):
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "y"}
        return bool(value)
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    if isinstance(current, tuple):
        return tuple(tuple(t) if isinstance(t, (list, tuple)) else t for t in value)
    return value


# camelCase names that don't map 1:1 through _snake
_ALIASES = {
    "sidewaysADXThreshold": "sideways_adx_threshold",
    "adxTrendThreshold": "adx_trend_threshold",
    "bbStdDev": "bb_std_dev",
    "ema200": "ema_long",
    "atrMultiplier": "atr_multiplier_long",
}


# Named, versioned threshold sets.
PRESETS: dict[str, dict] = {
    "signal-engine-v2": {},
    # HTTP signal endpoint
    "api-server-v1": {
        "rsi_oversold": 30.0,
        "rsi_overbought": 70.0,
        "risk_reward_ratio": 2.0,
    },
    # autonomous scanner: looser RSI, lower ADX gates
    "autotrader-v1": {
        "rsi_oversold": 35.0,
        "rsi_overbought": 65.0,
        "sideways_adx_threshold": 18.0,
        "adx_trend_threshold": 20.0,
    },
    # edge worker: ATR-based stops when no swing level is available
    "worker-v1": {
        "rsi_oversold": 30.0,
        "rsi_overbought": 70.0,
        "atr_multiplier_long": 1.5,
        "atr_multiplier_short": 2.0,
        "atr_fallback": True,
        "risk_reward_ratio": 2.0,
    },
}


def preset(name: str) -> EngineConfig:
    if name not in PRESETS:
        raise KeyError(f"Unknown preset '{name}'. Available: {sorted(PRESETS)}")
    return replace(EngineConfig(), preset=name, **PRESETS[name]).validate()


def load_engine_config(path: str = "config.yaml", overrides: dict | None = None) -> EngineConfig:
    """Read the `engine:` section (plus logging.explain_rejects) from a YAML file.
    `overrides` (e.g. from the command line) win over the file.
    """
    cfg = load_config(path)
    eng = dict(cfg.get("engine", {}) or {})
    logcfg = cfg.get("logging", {}) or {}
    if "explain_rejects" in logcfg and "explain_rejects" not in eng:
        eng["explain_rejects"] = logcfg["explain_rejects"]
    eng.update(overrides or {})
    return EngineConfig.from_dict(eng)
