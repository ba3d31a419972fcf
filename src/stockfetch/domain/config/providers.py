"""Quote provider configuration model."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class ProvidersConfig(BaseModel):
    """Configuration for third-party quote providers.

    Attributes:
        order: Providers to try, first to last
        twelve_data_api_key: Twelve Data API key (TWELVE_DATA_API_KEY)
        alpha_vantage_api_key: Alpha Vantage API key (ALPHA_VANTAGE_API_KEY)
        twelve_data_url: Twelve Data base URL
        alpha_vantage_url: Alpha Vantage query endpoint
        exchange_suffix: Suffix appended to bare symbols (".NS" for NSE, ".BO" for BSE)
        timeout: Per-request timeout in seconds
        use_mock_fallback: Serve generated data when every provider fails
        batch_size: Symbols fetched concurrently when quoting several at once
        batch_delay: Seconds to wait between those batches
    """

    order: List[Literal["twelve_data", "alpha_vantage"]] = Field(
        default_factory=lambda: ["twelve_data", "alpha_vantage"]
    )
    twelve_data_api_key: Optional[str] = None
    alpha_vantage_api_key: Optional[str] = None
    twelve_data_url: str = "https://api.twelvedata.com"
    alpha_vantage_url: str = "https://www.alphavantage.co/query"
    exchange_suffix: str = ".NS"
    timeout: float = Field(10.0, gt=0.0, le=120.0)
    use_mock_fallback: bool = True
    batch_size: int = Field(5, ge=1, le=50)
    batch_delay: float = Field(1.0, ge=0.0, le=60.0)
