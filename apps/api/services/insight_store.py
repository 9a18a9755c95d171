"""
SQL-backed store for cached analyses (swot_analysis table).

The store never commits or rolls back the caller's session. Each read and
write runs inside a savepoint (`db.begin_nested()`), so a failing statement
only undoes itself and anything the caller flushed earlier in the same
transaction survives. Committing is the caller's job.

Reads prefer an ordered "latest by generated_at" query. If that query fails
(e.g. the composite index is missing on a fresh database), the client's rows
are fetched unordered and the latest is picked in memory, so the read path
keeps working.

Updates are conditional on generated_at inside the UPDATE statement itself:
a newer analysis written by a concurrent regeneration is never replaced by
an older one.
"""

import logging
from typing import Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.exceptions import InsightPersistenceError
from services.insight_cache import CachedAnalysis, InsightStore, as_utc, select_latest

logger = logging.getLogger(__name__)


def _to_cached(row: Any) -> CachedAnalysis:
    return CachedAnalysis(
        client_id=row.client_id,
        analysis=row.analysis,
        generated_at=as_utc(row.generated_at),
        data_fingerprint=row.data_fingerprint,
        metrics=row.metrics or {},
        coach_id=row.coach_id,
        ref=row.id,
    )


class SqlInsightStore(InsightStore):

    def __init__(self, db: Session):
        self.db = db

    def _query_latest_ordered(self, client_id: str):
        from models import SwotAnalysis

        return (
            self.db.query(SwotAnalysis)
            .filter(SwotAnalysis.client_id == client_id)
            .order_by(SwotAnalysis.generated_at.desc())
            .first()
        )

    def _query_all_unordered(self, client_id: str) -> List[Any]:
        from models import SwotAnalysis

        return (
            self.db.query(SwotAnalysis)
            .filter(SwotAnalysis.client_id == client_id)
            .all()
        )

    def find_latest_by_client(self, client_id: str) -> Optional[CachedAnalysis]:
        try:
            with self.db.begin_nested():
                row = self._query_latest_ordered(client_id)
            return _to_cached(row) if row else None
        except SQLAlchemyError as e:
            logger.warning(
                f"Ordered analysis lookup failed for client {client_id}, "
                f"falling back to unordered fetch: {e}"
            )

        try:
            with self.db.begin_nested():
                rows = self._query_all_unordered(client_id)
        except SQLAlchemyError as e:
            raise InsightPersistenceError(f"Analysis lookup failed for client {client_id}: {e}") from e
        return select_latest(_to_cached(r) for r in rows)

    def insert(self, record: CachedAnalysis) -> Any:
        from models import SwotAnalysis

        row = SwotAnalysis(
            client_id=record.client_id,
            coach_id=record.coach_id,
            analysis=record.analysis,
            metrics=record.metrics,
            data_fingerprint=record.data_fingerprint,
            generated_at=as_utc(record.generated_at),
        )
        try:
            with self.db.begin_nested():
                self.db.add(row)
        except SQLAlchemyError as e:
            raise InsightPersistenceError(f"Analysis insert failed for client {record.client_id}: {e}") from e
        return row.id

    def update(self, ref: Any, record: CachedAnalysis) -> bool:
        from models import SwotAnalysis

        generated_at = as_utc(record.generated_at)
        try:
            with self.db.begin_nested():
                updated = (
                    self.db.query(SwotAnalysis)
                    .filter(SwotAnalysis.id == ref)
                    .filter(SwotAnalysis.generated_at <= generated_at)
                    .update(
                        {
                            SwotAnalysis.coach_id: record.coach_id,
                            SwotAnalysis.analysis: record.analysis,
                            SwotAnalysis.metrics: record.metrics,
                            SwotAnalysis.data_fingerprint: record.data_fingerprint,
                            SwotAnalysis.generated_at: generated_at,
                        },
                        synchronize_session="fetch",
                    )
                )
                if not updated:
                    still_there = (
                        self.db.query(SwotAnalysis.id).filter(SwotAnalysis.id == ref).first()
                    )
        except SQLAlchemyError as e:
            raise InsightPersistenceError(f"Analysis update failed for client {record.client_id}: {e}") from e

        if updated:
            return True
        if still_there is None:
            raise InsightPersistenceError(f"Analysis {ref} for client {record.client_id} no longer exists")
        return False
