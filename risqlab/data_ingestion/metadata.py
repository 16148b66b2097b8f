"""risqlab – asset metadata enrichment.

Fetches categories, description and links for every asset with a known
external id and stores them in ``cryptocurrency_metadata``. The stored
categories drive the exclusion policy, so the run ends with a summary of
how many assets each exclusion rule currently removes, plus any category
tags that matched a rule only ambiguously.
"""

from __future__ import annotations

import time
from collections import Counter
from typing import Callable, List, Optional

from risqlab.core.logging import get_logger
from risqlab.core.results import ItemOutcome, RunSummary
from risqlab.data_ingestion.coingecko_client import CoinGeckoClient, CoinGeckoClientError
from risqlab.data_ingestion.config import MetadataSettings
from risqlab.data_ingestion.pacing import CallPacer
from risqlab.data_ingestion.storage import MarketDataStorage
from risqlab.universe.exclusions import ExclusionPolicy, ExclusionVerdict


logger = get_logger(__name__)


def _log_exclusion_summary(verdicts: List[ExclusionVerdict]) -> None:
    counts: Counter = Counter()
    ambiguous: Counter = Counter()
    for verdict in verdicts:
        for reason in verdict.reasons:
            counts[reason.value] += 1
        for category in verdict.ambiguous_categories:
            ambiguous[category] += 1

    logger.info(
        "Exclusions: %d asset(s) excluded (%s)",
        sum(1 for v in verdicts if v.excluded),
        ", ".join(f"{label}: {n}" for label, n in sorted(counts.items())) or "none",
    )
    for category, n in sorted(ambiguous.items()):
        logger.warning(
            "Ambiguous exclusion match on category %r (%d asset(s)); review the exclusion policy",
            category,
            n,
        )


def ingest_asset_metadata(
    *,
    client: CoinGeckoClient,
    storage: MarketDataStorage,
    settings: Optional[MetadataSettings] = None,
    policy: Optional[ExclusionPolicy] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunSummary:
    """Fetch and store metadata for every asset with an external id."""

    settings = settings or MetadataSettings()
    policy = policy or ExclusionPolicy()
    summary = RunSummary(stage="asset metadata")
    started = time.monotonic()

    assets = storage.list_assets_with_external_id()
    logger.info("Fetching metadata for %d asset(s)", len(assets))

    verdicts: List[ExclusionVerdict] = []
    pacer = CallPacer(settings.api_delay_seconds, sleep=sleep)
    for asset in assets:
        if not asset.coingecko_id:
            summary.record(ItemOutcome.skipped(asset.symbol, "no external id"))
            continue
        pacer.wait()
        try:
            metadata = client.get_asset_metadata(asset.coingecko_id)
            storage.save_metadata(asset.crypto_id, metadata)
        except CoinGeckoClientError as exc:
            summary.record(ItemOutcome.error(asset.symbol, str(exc)))
            continue
        except Exception as exc:  # pragma: no cover - defensive
            logger.exception("Failed to store metadata for %s", asset.symbol)
            summary.record(ItemOutcome.error(asset.symbol, str(exc)))
            continue

        verdict = policy.classify(metadata.categories)
        verdicts.append(verdict)
        if verdict.excluded:
            logger.debug("%s excluded: %s", asset.symbol, verdict.label)
        summary.record(ItemOutcome.success(asset.symbol, rows_written=1))

    _log_exclusion_summary(verdicts)
    summary.duration_seconds = time.monotonic() - started
    summary.log(logger)
    return summary


__all__ = ["ingest_asset_metadata"]
