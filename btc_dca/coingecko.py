from __future__ import annotations

import os
import time
from typing import Any, Dict, Optional

import pandas as pd
import requests
from dotenv import load_dotenv

from .config import BACK_OFF_FACTOR, COINGECKO_BASE_URL, HISTORY_DAYS, REQUEST_TIMEOUT_S, RETRIES
from .errors import IngestionError
from .logger import get_logger
from .models import PriceSeries

logger = get_logger(__name__)


class CoinGeckoClient:
    """API client for CoinGecko with focus on BTC spot and daily history."""

    # API Endpoints
    COIN_PATH = "/coins/{coin_id}"
    MARKET_CHART_PATH = "/coins/{coin_id}/market_chart"

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        coin_id: str = "bitcoin",
        timeout: float = REQUEST_TIMEOUT_S,
    ) -> None:
        load_dotenv()

        self.base_url = (base_url or COINGECKO_BASE_URL).rstrip("/")
        self.api_key = api_key or os.getenv("CG_DEMO_API_KEY")
        self.session = session or requests.Session()
        self.coin_id = coin_id
        self.timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Make HTTP request to CoinGecko, retrying transport errors and 429s."""
        url = f"{self.base_url}{path}"

        retry = 0
        while retry < RETRIES:
            try:
                response = self.session.request(
                    method=method,
                    url=url,
                    params=params,
                    timeout=self.timeout,
                )
                response.raise_for_status()
                return response.json()

            except requests.exceptions.HTTPError as exc:
                status = exc.response.status_code if exc.response is not None else None
                if status != 429:
                    logger.error(f"HTTPError calling {path}: {exc}. No retry for status {status}.")
                    raise IngestionError(f"Market data request failed ({status}).") from exc
                retry += 1
                retry_after = exc.response.headers.get("Retry-After")
                wait_time = int(retry_after) if retry_after and retry_after.isdigit() else BACK_OFF_FACTOR ** retry
                logger.warning(f"Rate limit exceeded (429). Retrying in {wait_time} seconds... (Attempt {retry}/{RETRIES})")
                if retry < RETRIES:
                    time.sleep(wait_time)

            except ValueError as exc:
                # requests' JSONDecodeError subclasses ValueError
                raise IngestionError(f"Malformed response from {path}.") from exc

            except requests.exceptions.RequestException as exc:
                retry += 1
                wait_time = BACK_OFF_FACTOR ** retry
                logger.warning(f"RequestException: {exc}. Retrying in {wait_time} seconds... (Attempt {retry}/{RETRIES})")
                if retry < RETRIES:
                    time.sleep(wait_time)

        logger.error(f"Max retries reached calling {path}.")
        raise IngestionError("Failed to fetch Bitcoin data. Please try again.")

    def get_spot_price(self) -> float:
        """Current USD price from the coin endpoint."""
        data = self._request(
            "GET",
            self.COIN_PATH.format(coin_id=self.coin_id),
            params={"sparkline": "false"},
        )
        try:
            price = float(data["market_data"]["current_price"]["usd"])
        except (KeyError, TypeError, ValueError) as exc:
            raise IngestionError("Spot price missing from market data.") from exc
        if not price > 0:
            raise IngestionError(f"Invalid spot price: {price}")
        return price

    def get_market_chart(self, days: int = HISTORY_DAYS) -> pd.DataFrame:
        """
        Fetch daily USD prices for the last ``days`` days.

        Returns:
            DataFrame indexed by epoch-millisecond timestamp with a ``price`` column.
        """
        params: Dict[str, Any] = {
            "vs_currency": "usd",
            "days": days,
            "interval": "daily",
            "precision": "full",
        }
        if self.api_key:
            params["x_cg_demo_api_key"] = self.api_key

        data = self._request("GET", self.MARKET_CHART_PATH.format(coin_id=self.coin_id), params=params)
        points = data.get("prices") if isinstance(data, dict) else None
        if not isinstance(points, list) or not points:
            raise IngestionError("Failed to load historical price data for SMA.")

        try:
            df = pd.DataFrame([p[:2] for p in points], columns=["timestamp", "price"])
        except (KeyError, TypeError, ValueError) as exc:
            raise IngestionError("Malformed historical price data.") from exc

        df["timestamp"] = pd.to_numeric(df["timestamp"], errors="coerce")
        df["price"] = pd.to_numeric(df["price"], errors="coerce")
        if df.isna().any().any():
            raise IngestionError("Malformed historical price data.")
        df["timestamp"] = df["timestamp"].astype("int64")
        return df.set_index("timestamp")

    def get_price_history(self, days: int = HISTORY_DAYS) -> PriceSeries:
        df = self.get_market_chart(days)
        return PriceSeries.from_points(zip(df.index, df["price"]))


if __name__ == "__main__":
    client = CoinGeckoClient()
    print(f"Spot: {client.get_spot_price()}")
    print(client.get_market_chart(30).tail())
