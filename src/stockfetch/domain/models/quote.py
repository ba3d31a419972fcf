"""Market data models - quotes and candlestick history"""

from dataclasses import dataclass, field
from typing import List, Literal, Optional

TimeFrame = Literal["1m", "5m", "15m", "30m", "1h", "4h", "1d", "1w", "1M"]

TIMEFRAMES: tuple = ("1m", "5m", "15m", "30m", "1h", "4h", "1d", "1w", "1M")


@dataclass(frozen=True)
class StockPrice:
    """Latest quote for a symbol"""

    symbol: str
    price: float
    change: float = 0.0
    change_percent: float = 0.0
    volume: int = 0
    high: float = 0.0
    low: float = 0.0
    open: float = 0.0
    previous_close: float = 0.0
    timestamp: Optional[str] = None  # Provider-reported trading day / datetime
    source: str = "unknown"  # Provider that produced the quote

    @property
    def is_up(self) -> bool:
        return self.change >= 0


@dataclass(frozen=True)
class Candle:
    """One OHLCV bar"""

    timestamp: str
    open: float
    high: float
    low: float
    close: float
    volume: int = 0

    def __post_init__(self):
        if self.high < self.low:
            raise ValueError("Candle high must be >= low")


@dataclass
class HistoricalData:
    """Candles for a symbol, oldest first"""

    symbol: str
    timeframe: str
    candles: List[Candle] = field(default_factory=list)
    source: str = "unknown"

    def __post_init__(self):
        if self.timeframe not in TIMEFRAMES:
            raise ValueError(f"Unsupported timeframe: {self.timeframe}")

    def __len__(self) -> int:
        return len(self.candles)
