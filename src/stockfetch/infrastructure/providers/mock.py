"""Mock quote provider for offline use and as a last-resort fallback"""

import random
from datetime import datetime, timedelta, timezone
from typing import Optional

from stockfetch.domain.errors import QuoteProviderError
from stockfetch.domain.models.quote import Candle, HistoricalData, StockPrice
from stockfetch.infrastructure.providers.base import QuoteProvider, check_size

STEPS = {
    "1m": timedelta(minutes=1),
    "5m": timedelta(minutes=5),
    "15m": timedelta(minutes=15),
    "30m": timedelta(minutes=30),
    "1h": timedelta(hours=1),
    "4h": timedelta(hours=4),
    "1d": timedelta(days=1),
    "1w": timedelta(weeks=1),
    "1M": timedelta(days=30),
}


class MockProvider(QuoteProvider):
    """Generates plausible random-walk prices. Never calls the network."""

    name = "mock"
    requires_api_key = False

    def __init__(self, *args, seed: Optional[int] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._random = random.Random(seed)

    def _base_price(self) -> float:
        return self._random.random() * 5000 + 100

    async def get_quote(self, symbol: str) -> StockPrice:
        price = self._base_price()
        change = (self._random.random() - 0.5) * 100
        return StockPrice(
            symbol=symbol,
            price=price,
            change=change,
            change_percent=change / price * 100,
            volume=self._random.randrange(10_000_000),
            high=price * 1.05,
            low=price * 0.95,
            open=price * (1 + (self._random.random() - 0.5) * 0.02),
            previous_close=price - change,
            timestamp=datetime.now(timezone.utc).isoformat(),
            source=self.name,
        )

    async def get_history(self, symbol: str, timeframe: str = "1d", size: int = 100) -> HistoricalData:
        check_size(size)
        if timeframe not in STEPS:
            raise QuoteProviderError(self.name, f"unsupported timeframe {timeframe}")

        step = STEPS[timeframe]
        now = datetime.now(timezone.utc)
        price = self._base_price()
        candles = []
        for i in range(size - 1, -1, -1):
            open_ = price
            volatility = open_ * 0.02
            close = open_ + (self._random.random() - 0.5) * volatility
            candles.append(
                Candle(
                    timestamp=(now - step * i).isoformat(),
                    open=open_,
                    high=max(open_, close) + self._random.random() * volatility * 0.5,
                    low=min(open_, close) - self._random.random() * volatility * 0.5,
                    close=close,
                    volume=self._random.randrange(10_000_000),
                )
            )
            price = close
        return HistoricalData(symbol=symbol, timeframe=timeframe, candles=candles, source=self.name)
