"""Alpha Vantage provider (https://www.alphavantage.co/documentation/)"""

import logging
from typing import Any, Dict, Optional, Tuple

from stockfetch.domain.errors import QuoteProviderError
from stockfetch.domain.models.quote import Candle, HistoricalData, StockPrice
from stockfetch.infrastructure.providers.base import QuoteProvider, check_size, to_float, to_int

logger = logging.getLogger(__name__)

# timeframe -> (function, intraday interval)
SERIES = {
    "1m": ("TIME_SERIES_INTRADAY", "1min"),
    "5m": ("TIME_SERIES_INTRADAY", "5min"),
    "15m": ("TIME_SERIES_INTRADAY", "15min"),
    "30m": ("TIME_SERIES_INTRADAY", "30min"),
    "1h": ("TIME_SERIES_INTRADAY", "60min"),
    "1d": ("TIME_SERIES_DAILY", None),
    "1w": ("TIME_SERIES_WEEKLY", None),
    "1M": ("TIME_SERIES_MONTHLY", None),
}

# "compact" returns the latest 100 points
COMPACT_SIZE = 100


class AlphaVantageProvider(QuoteProvider):
    """Quotes and time series from Alpha Vantage"""

    name = "alpha_vantage"

    @property
    def api_key(self) -> Optional[str]:
        return self.config.alpha_vantage_api_key

    def _check_payload(self, data: Any) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise QuoteProviderError(self.name, "unexpected response payload")
        if "Note" in data or "Information" in data:
            raise QuoteProviderError(self.name, f"rate limit reached: {data.get('Note') or data.get('Information')}")
        if "Error Message" in data:
            raise QuoteProviderError(self.name, data["Error Message"])
        return data

    async def get_quote(self, symbol: str) -> StockPrice:
        data = self._check_payload(
            await self._get_json(
                self.config.alpha_vantage_url,
                {"function": "GLOBAL_QUOTE", "symbol": self.format_symbol(symbol), "apikey": self.api_key},
            )
        )
        quote = data.get("Global Quote") or {}
        if not isinstance(quote, dict) or not quote:
            raise QuoteProviderError(self.name, f"empty quote for {symbol}")

        return StockPrice(
            symbol=symbol,
            price=to_float(quote.get("05. price")),
            change=to_float(quote.get("09. change")),
            change_percent=to_float(quote.get("10. change percent")),
            volume=to_int(quote.get("06. volume")),
            high=to_float(quote.get("03. high")),
            low=to_float(quote.get("04. low")),
            open=to_float(quote.get("02. open")),
            previous_close=to_float(quote.get("08. previous close")),
            timestamp=quote.get("07. latest trading day"),
            source=self.name,
        )

    def _series_params(self, symbol: str, timeframe: str, size: int) -> Tuple[Dict[str, Any], str]:
        if timeframe not in SERIES:
            raise QuoteProviderError(self.name, f"unsupported timeframe {timeframe}")
        function, interval = SERIES[timeframe]
        params: Dict[str, Any] = {
            "function": function,
            "symbol": self.format_symbol(symbol),
            "outputsize": "compact" if size <= COMPACT_SIZE else "full",
            "apikey": self.api_key,
        }
        if interval:
            params["interval"] = interval
        return params, function

    async def get_history(self, symbol: str, timeframe: str = "1d", size: int = 100) -> HistoricalData:
        check_size(size)
        params, function = self._series_params(symbol, timeframe, size)
        data = self._check_payload(await self._get_json(self.config.alpha_vantage_url, params))

        series_key = next((key for key in data if "Time Series" in key), None)
        if series_key is None:
            raise QuoteProviderError(self.name, f"no time series for {symbol} ({function})")

        try:
            candles = [
                Candle(
                    timestamp=timestamp,
                    open=to_float(values.get("1. open")),
                    high=to_float(values.get("2. high")),
                    low=to_float(values.get("3. low")),
                    close=to_float(values.get("4. close")),
                    volume=to_int(values.get("5. volume")),
                )
                for timestamp, values in data[series_key].items()
            ]
        except (TypeError, AttributeError, ValueError) as e:
            raise QuoteProviderError(self.name, f"malformed time series for {symbol}: {e!r}") from e
        candles.sort(key=lambda c: c.timestamp)
        logger.debug(f"{self.name}: {len(candles)} candles for {symbol} ({timeframe})")
        return HistoricalData(symbol=symbol, timeframe=timeframe, candles=candles[-size:], source=self.name)
