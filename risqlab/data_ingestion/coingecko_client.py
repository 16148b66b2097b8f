"""risqlab – CoinGecko HTTP client.

This module provides a minimal, well-typed client for the CoinGecko Pro
API, focused on the three capabilities the pipeline consumes:

- A paginated top-N market snapshot (``/coins/markets``).
- A historical price / market-cap / volume series for one asset
  (``/coins/{id}/market_chart``). CoinGecko returns daily points for
  spans above 90 days and hourly points for shorter spans.
- Descriptive metadata for one asset (``/coins/{id}``).

Every method performs exactly one HTTP call. Pacing between calls is the
caller's responsibility.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

import requests

from risqlab.core.config import ProviderConfig
from risqlab.core.logging import get_logger
from risqlab.core.time import from_epoch_millis
from risqlab.data_ingestion.types import (
    PERCENT_CHANGE_PERIODS,
    AssetMetadata,
    HistoricalSeries,
    MarketSnapshotEntry,
)

logger = get_logger(__name__)


class CoinGeckoClientError(Exception):
    """Raised when a CoinGecko API call fails or returns a malformed payload."""


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


class CoinGeckoClient:
    """Thin HTTP client for the CoinGecko Pro API.

    Parameters
    ----------
    api_key:
        CoinGecko Pro API key, sent as the ``x-cg-pro-api-key`` header.
    base_url:
        Base URL for the API.
    timeout_seconds:
        Request timeout in seconds.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://pro-api.coingecko.com/api/v3",
        timeout_seconds: int = 30,
    ) -> None:
        if not api_key:
            msg = "COINGECKO_API_KEY is not set; cannot initialise CoinGeckoClient"
            raise CoinGeckoClientError(msg)

        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._session = requests.Session()
        self._session.headers.update(
            {"x-cg-pro-api-key": api_key, "Accept": "application/json"}
        )

    @classmethod
    def from_config(cls, provider: ProviderConfig) -> "CoinGeckoClient":
        return cls(
            api_key=provider.api_key,
            base_url=provider.base_url,
            timeout_seconds=provider.timeout_seconds,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get_json(self, path: str, params: Dict[str, Any], context: str) -> Any:
        url = f"{self._base_url}{path}"
        logger.debug("CoinGeckoClient: GET %s params=%s", url, params)

        try:
            response = self._session.get(url, params=params, timeout=self._timeout_seconds)
        except requests.RequestException as exc:
            logger.error("CoinGecko request failed for %s: %s", context, exc)
            raise CoinGeckoClientError(f"CoinGecko request failed for {context}") from exc

        if response.status_code != 200:
            # Truncate body in logs to avoid huge messages.
            body_preview = response.text[:500]
            logger.error(
                "CoinGecko request failed: status=%s context=%s body=%s",
                response.status_code,
                context,
                body_preview,
            )
            msg = f"CoinGecko {path} call failed with status {response.status_code} for {context}"
            raise CoinGeckoClientError(msg)

        try:
            return response.json()
        except ValueError as exc:
            logger.error("Failed to decode CoinGecko JSON for %s: %s", context, exc)
            raise CoinGeckoClientError("Invalid JSON in CoinGecko response") from exc

    @staticmethod
    def _parse_pairs(payload: Dict[str, Any], key: str, context: str) -> List[Tuple[datetime, float]]:
        raw = payload.get(key)
        if not isinstance(raw, list):
            raise CoinGeckoClientError(f"Missing '{key}' array in market_chart for {context}")

        pairs: List[Tuple[datetime, float]] = []
        for item in raw:
            try:
                ts_ms, value = item
                pairs.append((from_epoch_millis(float(ts_ms)), float(value or 0.0)))
            except (TypeError, ValueError) as exc:
                raise CoinGeckoClientError(
                    f"Malformed '{key}' point {item!r} in market_chart for {context}"
                ) from exc
        return pairs

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_market_snapshot(self, page: int, page_size: int = 250) -> List[MarketSnapshotEntry]:
        """Fetch one page of the top assets ordered by market cap."""

        params = {
            "vs_currency": "usd",
            "order": "market_cap_desc",
            "per_page": page_size,
            "page": page,
            "price_change_percentage": ",".join(PERCENT_CHANGE_PERIODS),
        }
        payload = self._get_json("/coins/markets", params, f"page {page}")
        if not isinstance(payload, list):
            raise CoinGeckoClientError(f"Invalid /coins/markets payload for page {page}")

        entries: List[MarketSnapshotEntry] = []
        for row in payload:
            try:
                percent_changes = {
                    period: _optional_float(row.get(f"price_change_percentage_{period}_in_currency"))
                    for period in PERCENT_CHANGE_PERIODS
                }
                # 24h change is also exposed without the currency suffix.
                if percent_changes["24h"] is None:
                    percent_changes["24h"] = _optional_float(row.get("price_change_percentage_24h"))

                entries.append(
                    MarketSnapshotEntry(
                        coingecko_id=str(row["id"]),
                        symbol=str(row["symbol"]).upper(),
                        name=str(row["name"]),
                        price_usd=float(row.get("current_price") or 0.0),
                        circulating_supply=float(row.get("circulating_supply") or 0.0),
                        volume_24h_usd=float(row.get("total_volume") or 0.0),
                        percent_changes=percent_changes,
                        market_cap_rank=row.get("market_cap_rank") or None,
                        total_supply=_optional_float(row.get("total_supply")),
                        max_supply=_optional_float(row.get("max_supply")),
                        fully_diluted_valuation=_optional_float(row.get("fully_diluted_valuation")),
                        image_url=row.get("image") or None,
                    )
                )
            except (KeyError, TypeError, ValueError) as exc:
                logger.error("Malformed /coins/markets row on page %d: %s", page, exc)
                raise CoinGeckoClientError("Malformed row in CoinGecko /coins/markets response") from exc

        logger.info("CoinGeckoClient.get_market_snapshot: page %d returned %d assets", page, len(entries))
        return entries

    def get_historical_series(self, coingecko_id: str, days: int) -> HistoricalSeries:
        """Fetch up to ``days`` of price, market-cap and volume history."""

        params = {"vs_currency": "usd", "days": days}
        payload = self._get_json(f"/coins/{coingecko_id}/market_chart", params, coingecko_id)
        if not isinstance(payload, dict):
            raise CoinGeckoClientError(f"Invalid market_chart payload for {coingecko_id}")

        series = HistoricalSeries(
            prices=self._parse_pairs(payload, "prices", coingecko_id),
            market_caps=self._parse_pairs(payload, "market_caps", coingecko_id),
            volumes=self._parse_pairs(payload, "total_volumes", coingecko_id),
        )
        logger.debug(
            "CoinGeckoClient.get_historical_series: %s days=%d returned %d points",
            coingecko_id,
            days,
            len(series.prices),
        )
        return series

    def get_asset_metadata(self, coingecko_id: str) -> AssetMetadata:
        """Fetch categories, description and links for an asset."""

        params = {
            "localization": "false",
            "tickers": "false",
            "market_data": "false",
            "community_data": "false",
            "developer_data": "false",
        }
        payload = self._get_json(f"/coins/{coingecko_id}", params, coingecko_id)
        if not isinstance(payload, dict):
            raise CoinGeckoClientError(f"Invalid /coins payload for {coingecko_id}")

        links = payload.get("links") or {}
        homepage = [url for url in (links.get("homepage") or []) if url]
        github = [url for url in ((links.get("repos_url") or {}).get("github") or []) if url]
        twitter = links.get("twitter_screen_name")
        telegram = links.get("telegram_channel_identifier")

        genesis: Optional[date] = None
        if payload.get("genesis_date"):
            try:
                genesis = date.fromisoformat(payload["genesis_date"])
            except ValueError:
                logger.warning("Ignoring invalid genesis_date %r for %s", payload["genesis_date"], coingecko_id)

        return AssetMetadata(
            categories=[str(c) for c in (payload.get("categories") or []) if c],
            description=(payload.get("description") or {}).get("en") or None,
            image_url=(payload.get("image") or {}).get("large") or None,
            website=homepage[0] if homepage else None,
            whitepaper=links.get("whitepaper") or None,
            twitter=f"https://x.com/{twitter}" if twitter else None,
            reddit=links.get("subreddit_url") or None,
            telegram=f"https://t.me/{telegram}" if telegram else None,
            github=github[0] if github else None,
            platform=payload.get("asset_platform_id") or None,
            genesis_date=genesis,
        )

    def close(self) -> None:
        """Close the underlying HTTP session."""

        self._session.close()


__all__ = ["CoinGeckoClient", "CoinGeckoClientError"]
