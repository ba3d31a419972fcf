"""Twelve Data provider (https://twelvedata.com/docs)"""

import logging
from typing import Any, Dict, Optional

from stockfetch.domain.errors import QuoteProviderError
from stockfetch.domain.models.quote import Candle, HistoricalData, StockPrice
from stockfetch.infrastructure.providers.base import QuoteProvider, check_size, to_float, to_int

logger = logging.getLogger(__name__)

INTERVALS = {
    "1m": "1min",
    "5m": "5min",
    "15m": "15min",
    "30m": "30min",
    "1h": "1h",
    "4h": "4h",
    "1d": "1day",
    "1w": "1week",
    "1M": "1month",
}


class TwelveDataProvider(QuoteProvider):
    """Quotes and time series from Twelve Data"""

    name = "twelve_data"

    @property
    def api_key(self) -> Optional[str]:
        return self.config.twelve_data_api_key

    def _check_payload(self, data: Any) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise QuoteProviderError(self.name, "unexpected response payload")
        # Errors arrive with HTTP 200 and a status/code in the body
        if data.get("code") == 429:
            raise QuoteProviderError(self.name, "rate limit reached")
        if data.get("status") == "error":
            raise QuoteProviderError(self.name, data.get("message", "unknown error"))
        return data

    async def get_quote(self, symbol: str) -> StockPrice:
        data = self._check_payload(
            await self._get_json(
                f"{self.config.twelve_data_url}/quote",
                {"symbol": self.format_symbol(symbol), "apikey": self.api_key},
            )
        )
        if not data.get("symbol") or not data.get("close"):
            raise QuoteProviderError(self.name, f"incomplete quote for {symbol}")

        return StockPrice(
            symbol=symbol,
            price=to_float(data["close"]),
            change=to_float(data.get("change")),
            change_percent=to_float(data.get("percent_change")),
            volume=to_int(data.get("volume")),
            high=to_float(data.get("high")),
            low=to_float(data.get("low")),
            open=to_float(data.get("open")),
            previous_close=to_float(data.get("previous_close")),
            timestamp=data.get("datetime"),
            source=self.name,
        )

    async def get_history(self, symbol: str, timeframe: str = "1d", size: int = 100) -> HistoricalData:
        check_size(size)
        if timeframe not in INTERVALS:
            raise QuoteProviderError(self.name, f"unsupported timeframe {timeframe}")

        data = self._check_payload(
            await self._get_json(
                f"{self.config.twelve_data_url}/time_series",
                {
                    "symbol": self.format_symbol(symbol),
                    "interval": INTERVALS[timeframe],
                    "outputsize": size,
                    "apikey": self.api_key,
                },
            )
        )
        values = data.get("values")
        if not isinstance(values, list):
            raise QuoteProviderError(self.name, f"no time series for {symbol}")

        try:
            candles = [
                Candle(
                    timestamp=item["datetime"],
                    open=to_float(item.get("open")),
                    high=to_float(item.get("high")),
                    low=to_float(item.get("low")),
                    close=to_float(item.get("close")),
                    volume=to_int(item.get("volume")),
                )
                for item in values
            ]
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise QuoteProviderError(self.name, f"malformed time series for {symbol}: {e!r}") from e
        candles.sort(key=lambda c: c.timestamp)
        logger.debug(f"{self.name}: {len(candles)} candles for {symbol} ({timeframe})")
        return HistoricalData(symbol=symbol, timeframe=timeframe, candles=candles[-size:], source=self.name)
