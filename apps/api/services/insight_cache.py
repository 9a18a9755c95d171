"""
Insight Cache Policy

Decides whether a stored AI analysis for a client can be served again or has
to be regenerated, and owns the write-back contract:

- Read: latest stored analysis by generated_at; reuse iff younger than the
  freshness window (default 7 days) and regeneration was not forced
- Generate: delegated to the caller's generator; failures propagate
- Write: best-effort upsert, update the latest record in place or insert

No lock is taken. Two callers that both find a stale analysis both
regenerate and both write; the record with the later generated_at wins.
This is a freshness cache, not a ledger.

A failed cache read is treated as a miss. A failed cache write is logged and
the freshly generated analysis is still returned.
"""

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Optional, Sequence

from core.config import settings
from core.exceptions import InsightGenerationError
from core.logging import log_fields

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS_WINDOW_DAYS = 7
SECONDS_PER_DAY = 86400


@dataclass
class CachedAnalysis:
    """One stored analysis. `ref` is the store's handle for in-place updates."""
    client_id: str
    analysis: Dict[str, Any]
    generated_at: datetime
    data_fingerprint: Optional[str] = None
    metrics: Dict[str, Any] = field(default_factory=dict)
    coach_id: Optional[str] = None
    ref: Any = None


@dataclass
class GeneratedAnalysis:
    """What a generator hands back to the policy."""
    analysis: Dict[str, Any]
    data_fingerprint: Optional[str] = None
    metrics: Dict[str, Any] = field(default_factory=dict)
    coach_id: Optional[str] = None


@dataclass
class InsightResult:
    analysis: Dict[str, Any]
    cached: bool
    generated_at: datetime
    persisted: bool = False
    data_fingerprint: Optional[str] = None


class InsightStore:
    """
    Persistence contract for cached analyses.

    `update` is a conditional write: it replaces the record at `ref` only if
    the stored generated_at is not newer than the incoming one, checked and
    written in one step. It returns False when a newer record is already
    stored.
    """

    def find_latest_by_client(self, client_id: str) -> Optional[CachedAnalysis]:
        raise NotImplementedError

    def insert(self, record: CachedAnalysis) -> Any:
        raise NotImplementedError

    def update(self, ref: Any, record: CachedAnalysis) -> bool:
        raise NotImplementedError


def as_utc(value: datetime) -> datetime:
    """Naive timestamps from the store are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def analysis_age_days(existing: CachedAnalysis, now: Optional[datetime] = None) -> float:
    now = as_utc(now or utc_now())
    return (now - as_utc(existing.generated_at)).total_seconds() / SECONDS_PER_DAY


def should_reuse(
    existing: Optional[CachedAnalysis],
    freshness_window_days: float = DEFAULT_FRESHNESS_WINDOW_DAYS,
    force_regenerate: bool = False,
    now: Optional[datetime] = None,
) -> bool:
    """True iff an analysis exists, is inside the window and regeneration was not forced."""
    if existing is None or force_regenerate:
        return False
    return analysis_age_days(existing, now) < freshness_window_days


def select_latest(records: Iterable[CachedAnalysis]) -> Optional[CachedAnalysis]:
    """Most recent record by generated_at, for stores that cannot order."""
    latest = None
    for record in records:
        if record.generated_at is None:
            continue
        if latest is None or as_utc(record.generated_at) > as_utc(latest.generated_at):
            latest = record
    return latest


def compute_data_fingerprint(scores: Sequence[float]) -> str:
    """
    Fingerprint of the inputs behind an analysis: score count and latest score.

    Scores are compared numerically, so 72 and 72.0 fingerprint the same.
    """
    contributing = [s for s in scores if s]
    latest = float(contributing[-1]) if contributing else 0.0
    hash_input = f"{len(contributing)}_{latest:g}"
    return hashlib.md5(hash_input.encode()).hexdigest()[:12]


class InsightCachePolicy:
    """
    Reuse-or-regenerate policy over an InsightStore.

    Usage:
        policy = InsightCachePolicy(SqlInsightStore(db))
        result = policy.get_or_generate(client_id, generate=lambda: ...)
    """

    def __init__(
        self,
        store: InsightStore,
        freshness_window_days: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.freshness_window_days = (
            freshness_window_days
            if freshness_window_days is not None
            else settings.INSIGHT_FRESHNESS_WINDOW_DAYS
        )
        self.clock = clock or utc_now

    def find_latest(self, client_id: str) -> Optional[CachedAnalysis]:
        """Latest stored analysis, or None when missing or unreadable."""
        try:
            return self.store.find_latest_by_client(client_id)
        except Exception as e:
            logger.warning(f"Cached analysis read failed for client {client_id}: {e}")
            return None

    def get_or_generate(
        self,
        client_id: str,
        generate: Callable[[], GeneratedAnalysis],
        force_regenerate: bool = False,
    ) -> InsightResult:
        """
        Serve the cached analysis if fresh, otherwise generate and write back.

        Raises InsightGenerationError when generation fails. The stale
        analysis, if one was found, is attached to the error.
        """
        existing = self.find_latest(client_id)
        now = self.clock()

        if should_reuse(existing, self.freshness_window_days, force_regenerate, now):
            logger.debug(
                f"Serving cached analysis for client {client_id} "
                f"(age={analysis_age_days(existing, now):.2f}d)"
            )
            return InsightResult(
                analysis=existing.analysis,
                cached=True,
                generated_at=as_utc(existing.generated_at),
                persisted=True,
                data_fingerprint=existing.data_fingerprint,
            )

        logger.info(
            f"Generating analysis for client {client_id} "
            f"(existing={'yes' if existing else 'no'}, forced={force_regenerate})"
        )
        try:
            generated = generate()
        except InsightGenerationError as e:
            if existing is not None and e.stale_analysis is None:
                e.stale_analysis = existing.analysis
            raise
        except Exception as e:
            raise InsightGenerationError(
                f"Analysis generation failed for client {client_id}: {e}",
                transient=False,
                stale_analysis=existing.analysis if existing else None,
            ) from e

        record = CachedAnalysis(
            client_id=client_id,
            analysis=generated.analysis,
            generated_at=as_utc(self.clock()),
            data_fingerprint=generated.data_fingerprint,
            metrics=generated.metrics,
            coach_id=generated.coach_id,
        )
        persisted = self.upsert(record)

        return InsightResult(
            analysis=record.analysis,
            cached=False,
            generated_at=record.generated_at,
            persisted=persisted,
            data_fingerprint=record.data_fingerprint,
        )

    def upsert(self, record: CachedAnalysis) -> bool:
        """
        Write a freshly generated analysis. Best-effort: never raises.

        Updates the client's latest record in place, or inserts the first one.
        A write older than what is already stored is dropped; the store
        enforces that at write time, so a newer record committed between
        our read and our write is never overwritten.
        """
        try:
            existing = self.store.find_latest_by_client(record.client_id)
            if existing is None:
                record.ref = self.store.insert(record)
                logger.info(
                    f"Inserted analysis for client {record.client_id}",
                    extra=log_fields(client_id=record.client_id, write="insert"),
                )
                return True

            if not self.store.update(existing.ref, record):
                logger.info(
                    f"Skipping analysis write for client {record.client_id}: "
                    f"stored record is newer than {record.generated_at.isoformat()}",
                    extra=log_fields(client_id=record.client_id, write="skipped"),
                )
                return False

            record.ref = existing.ref
            logger.info(
                f"Updated analysis for client {record.client_id}",
                extra=log_fields(client_id=record.client_id, write="update"),
            )
            return True
        except Exception as e:
            logger.error(
                f"Saving analysis failed for client {record.client_id}: {e}",
                exc_info=True,
            )
            return False
