"""
Narrative enrichment: optional prose commentary for flagged discrepancies.

Independent of the numeric analysis, which is authoritative and already
complete when this stage starts. Calls fan out with bounded concurrency, each
under a per-call timeout, with a capped number of retries on transient
failures only (the service is not idempotent: a repeat call writes new prose).
An overall deadline cancels whatever is still running; those entries come back
without commentary. Numeric fields are never changed and input order is kept.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping

from relationship_insights.analysis_engine.discrepancy import analyze_pairwise_discrepancies
from relationship_insights.analysis_engine.models import (
    CommentaryStatus,
    PairwiseDiscrepancy,
    RatingRecord,
)
from relationship_insights.config.settings import Settings, get_settings
from relationship_insights.config.thresholds import AnalysisThresholds
from relationship_insights.core.exceptions import NarrativeUnavailableError
from relationship_insights.insight_logging import get_logger
from relationship_insights.narrative.client import NarrativeGenerator

logger = get_logger(__name__)

MIN_CONCURRENCY = 1
MIN_TIMEOUT_SEC = 0.01


@dataclass
class EnrichmentConfig:
    """
    max_concurrency: calls in flight at once.
    call_timeout_sec: limit for a single generator call.
    max_retries: extra attempts after a transient failure (0 = no retry).
    retry_backoff_sec: base delay, doubled per attempt.
    deadline_sec: overall budget for the whole batch.
    """

    max_concurrency: int = 4
    call_timeout_sec: float = 20.0
    max_retries: int = 2
    retry_backoff_sec: float = 0.5
    deadline_sec: float = 60.0

    def __post_init__(self) -> None:
        self.max_concurrency = max(MIN_CONCURRENCY, int(self.max_concurrency))
        self.call_timeout_sec = max(MIN_TIMEOUT_SEC, float(self.call_timeout_sec))
        self.max_retries = max(0, int(self.max_retries))
        self.retry_backoff_sec = max(0.0, float(self.retry_backoff_sec))
        self.deadline_sec = max(MIN_TIMEOUT_SEC, float(self.deadline_sec))

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "EnrichmentConfig":
        s = settings or get_settings()
        return cls(
            max_concurrency=s.narrative_max_concurrency,
            call_timeout_sec=s.narrative_timeout_sec,
            max_retries=s.narrative_max_retries,
            retry_backoff_sec=s.narrative_retry_backoff_sec,
            deadline_sec=s.narrative_deadline_sec,
        )


def build_context(item: PairwiseDiscrepancy, shared: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Numbers handed to the generator: the discrepancy itself plus any shared context."""
    context: dict[str, Any] = {
        "category": item.category.value,
        "rating_a": item.rating_a,
        "rating_b": item.rating_b,
        "difference": item.difference,
        "weighted_difference": item.weighted_difference,
        "significance": item.significance.value,
        "recommendation_ref": item.recommendation_ref,
    }
    if shared:
        context["context"] = dict(shared)
    return context


async def _generate_with_retry(
    item: PairwiseDiscrepancy,
    generator: NarrativeGenerator,
    config: EnrichmentConfig,
    shared: Mapping[str, Any] | None,
) -> str:
    context = build_context(item, shared)
    attempt = 0
    while True:
        try:
            text = await asyncio.wait_for(generator(context), timeout=config.call_timeout_sec)
            if not isinstance(text, str) or not text.strip():
                raise NarrativeUnavailableError("empty commentary")
            return text.strip()
        except asyncio.TimeoutError:
            error = NarrativeUnavailableError("narrative call timed out", transient=True)
        except NarrativeUnavailableError as e:
            error = e
        if not error.transient or attempt >= config.max_retries:
            raise error
        delay = config.retry_backoff_sec * (2 ** attempt)
        attempt += 1
        logger.debug(
            "narrative_retry",
            category=item.category.value,
            attempt=attempt,
            delay_sec=delay,
            error=error.message,
        )
        await asyncio.sleep(delay)


async def enrich_discrepancies(
    discrepancies: Iterable[PairwiseDiscrepancy],
    generator: NarrativeGenerator,
    config: EnrichmentConfig | None = None,
    shared_context: Mapping[str, Any] | None = None,
) -> list[PairwiseDiscrepancy]:
    """
    Return copies of discrepancies with commentary filled in where possible.

    commentary_status: ok, unavailable (failed after retries), or
    deadline_exceeded (still pending when the batch deadline hit).
    """
    cfg = config or EnrichmentConfig()
    items = list(discrepancies)
    if not items:
        return []

    semaphore = asyncio.Semaphore(cfg.max_concurrency)

    async def _one(item: PairwiseDiscrepancy) -> PairwiseDiscrepancy:
        async with semaphore:
            try:
                text = await _generate_with_retry(item, generator, cfg, shared_context)
            except NarrativeUnavailableError as e:
                logger.warning("narrative_unavailable", category=item.category.value, error=e.message)
                return replace(item, commentary=None, commentary_status=CommentaryStatus.UNAVAILABLE)
            except Exception as e:
                logger.warning(
                    "narrative_failed",
                    category=item.category.value,
                    error=str(e),
                    exc_info=True,
                )
                return replace(item, commentary=None, commentary_status=CommentaryStatus.UNAVAILABLE)
            return replace(item, commentary=text, commentary_status=CommentaryStatus.OK)

    tasks = [asyncio.ensure_future(_one(item)) for item in items]
    done, pending = await asyncio.wait(tasks, timeout=cfg.deadline_sec)
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

    results: list[PairwiseDiscrepancy] = []
    for item, task in zip(items, tasks):
        if task in done:
            results.append(task.result())
        else:
            results.append(replace(item, commentary=None, commentary_status=CommentaryStatus.DEADLINE_EXCEEDED))
    logger.info(
        "narrative_enrichment_done",
        total=len(items),
        ok=sum(1 for r in results if r.commentary_status is CommentaryStatus.OK),
        unavailable=sum(1 for r in results if r.commentary_status is CommentaryStatus.UNAVAILABLE),
        deadline_exceeded=len(pending),
    )
    return results


async def analyze_daily_pair(
    record_a: RatingRecord | Mapping[Any, float],
    record_b: RatingRecord | Mapping[Any, float],
    generator: NarrativeGenerator | None = None,
    config: EnrichmentConfig | None = None,
    thresholds: AnalysisThresholds | None = None,
) -> list[PairwiseDiscrepancy]:
    """Pairwise discrepancies for one day, enriched when a generator is supplied."""
    flagged = analyze_pairwise_discrepancies(record_a, record_b, thresholds)
    if generator is None or not flagged:
        return flagged
    return await enrich_discrepancies(flagged, generator, config)
