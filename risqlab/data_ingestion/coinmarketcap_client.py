"""risqlab – CoinMarketCap HTTP client.

Only the historical Fear & Greed endpoint is used. A single call returns
up to ``limit`` daily readings, newest first, and costs one credit
regardless of ``limit``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List

import requests

from risqlab.core.config import ProviderConfig
from risqlab.core.logging import get_logger
from risqlab.data_ingestion.types import FearGreedPoint

logger = get_logger(__name__)


class CoinMarketCapClientError(Exception):
    """Raised when a CoinMarketCap API call fails."""


class CoinMarketCapClient:
    """Thin HTTP client for the CoinMarketCap Pro API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://pro-api.coinmarketcap.com",
        timeout_seconds: int = 30,
    ) -> None:
        if not api_key:
            msg = "COINMARKETCAP_API_KEY is not set; cannot initialise CoinMarketCapClient"
            raise CoinMarketCapClientError(msg)

        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._session = requests.Session()
        self._session.headers.update(
            {"X-CMC_PRO_API_KEY": api_key, "Accept": "application/json"}
        )

    @classmethod
    def from_config(cls, provider: ProviderConfig) -> "CoinMarketCapClient":
        return cls(
            api_key=provider.api_key,
            base_url=provider.base_url,
            timeout_seconds=provider.timeout_seconds,
        )

    def get_fear_and_greed(self, limit: int) -> List[FearGreedPoint]:
        """Fetch the latest ``limit`` daily Fear & Greed readings."""

        url = f"{self._base_url}/v3/fear-and-greed/historical"
        logger.info("CoinMarketCapClient.get_fear_and_greed: GET %s limit=%d", url, limit)

        try:
            response = self._session.get(url, params={"limit": limit}, timeout=self._timeout_seconds)
        except requests.RequestException as exc:
            logger.error("CoinMarketCap request failed: %s", exc)
            raise CoinMarketCapClientError("CoinMarketCap fear-and-greed request failed") from exc

        if response.status_code != 200:
            body_preview = response.text[:500]
            logger.error(
                "CoinMarketCap request failed: status=%s body=%s",
                response.status_code,
                body_preview,
            )
            msg = f"CoinMarketCap fear-and-greed call failed with status {response.status_code}"
            raise CoinMarketCapClientError(msg)

        try:
            payload = response.json()
        except ValueError as exc:
            raise CoinMarketCapClientError("Invalid JSON in CoinMarketCap response") from exc

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list) or not data:
            raise CoinMarketCapClientError("Invalid response format from CoinMarketCap fear-and-greed")

        points: List[FearGreedPoint] = []
        for entry in data:
            try:
                ts = datetime.fromtimestamp(int(entry["timestamp"]), tz=timezone.utc).replace(tzinfo=None)
                points.append(
                    FearGreedPoint(
                        timestamp=ts,
                        value=int(entry["value"]),
                        classification=entry.get("value_classification"),
                    )
                )
            except (KeyError, TypeError, ValueError) as exc:
                raise CoinMarketCapClientError(f"Malformed fear-and-greed entry {entry!r}") from exc

        return points

    def close(self) -> None:
        self._session.close()


__all__ = ["CoinMarketCapClient", "CoinMarketCapClientError"]
