from dataclasses import dataclass, field, fields
from typing import Any, Optional

LONG = "LONG"
SHORT = "SHORT"
WAIT = "WAIT"


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p[:1].upper() + p[1:] for p in rest)


def _wire(obj) -> dict:
    """Dataclass -> dict with camelCase keys (the payload callers serialize)."""
    out = {}
    for f in fields(obj):
        v = getattr(obj, f.name)
        out[_camel(f.name)] = v.to_dict() if hasattr(v, "to_dict") else v
    return out


@dataclass
class Candle:
    open: float
    high: float
    low: float
    close: float
    volume: float
    time: Any = None
    symbol: Optional[str] = None


@dataclass
class SupportResistance:
    supports: list[float]          # sorted high -> low
    resistances: list[float]       # sorted low -> high
    nearest_support: Optional[float]
    nearest_resistance: Optional[float]
    support_distance: Optional[float] = None      # % below price
    resistance_distance: Optional[float] = None   # % above price
    support_source: str = "NONE"                  # SWING | DEFAULT | NONE
    resistance_source: str = "NONE"

    def to_dict(self) -> dict:
        return _wire(self)


@dataclass
class Signal:
    action: str                    # LONG | SHORT | WAIT
    confidence: float              # percent, 0..95
    strength: str                  # WEAK | MODERATE | STRONG
    entry: float
    stop_loss: Optional[float]
    take_profit: Optional[float]
    risk_percent: Optional[float]
    reward_percent: Optional[float]
    risk_reward: Optional[float]
    leverage: int
    leverage_risk: str             # LOW | MODERATE | HIGH
    total_score: int
    average_score: float
    reasons: list[str] = field(default_factory=list)
    atr: Optional[float] = None
    atr_percent: Optional[float] = None

    def to_dict(self) -> dict:
        return _wire(self)


@dataclass
class AnalysisResult:
    timestamp: str                 # advisory only, never used in decisions
    symbol: str
    current_price: float
    indicators: dict
    analysis: dict
    signal: Signal
    market_structure: dict
    volume_confirmation: dict
    order_block: dict
    pullback: dict
    support_resistance: Optional[SupportResistance] = None

    ok: bool = field(default=True, init=False)

    def to_dict(self) -> dict:
        d = _wire(self)
        d.pop("ok", None)
        return d


@dataclass
class InsufficientData:
    """Returned (never raised) when the candle window is too short to analyze."""
    received: int
    required: int
    symbol: str = "UNKNOWN"

    ok: bool = field(default=False, init=False)

    @property
    def error(self) -> str:
        return f"Not enough data to analyze (need at least {self.required} candles, got {self.received})"

    def to_dict(self) -> dict:
        return {
            "error": self.error,
            "symbol": self.symbol,
            "required": self.required,
            "received": self.received,
        }
