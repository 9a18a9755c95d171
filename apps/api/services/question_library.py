"""
Question library lookups.

Historical answers can reference questions that have since been deleted;
`fetch_questions` simply omits those ids and the aggregator skips the answers.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from services.answer_scoring import Question, QuestionOption, normalize_question_weight

logger = logging.getLogger(__name__)


def _to_question(row: Any) -> Question:
    return Question(
        id=row.id,
        type=row.type,
        weight=row.weight,
        options=[QuestionOption.from_raw(o) for o in (row.options or [])],
        yes_is_positive=True if row.yes_is_positive is None else bool(row.yes_is_positive),
    )


def fetch_questions(question_ids: Iterable[str], db: Any) -> Dict[str, Question]:
    """Return {id: Question} for the ids that exist."""
    from models import CheckinQuestion

    ids = list({str(q) for q in question_ids})
    if not ids:
        return {}

    rows = db.query(CheckinQuestion).filter(CheckinQuestion.id.in_(ids)).all()
    found = {row.id: _to_question(row) for row in rows}

    missing = len(ids) - len(found)
    if missing:
        logger.debug(f"{missing} referenced question(s) no longer exist")
    return found


def save_question(
    question_id: str,
    question_type: str,
    db: Any,
    weight: Optional[int] = None,
    options: Optional[List[Any]] = None,
    yes_is_positive: Optional[bool] = None,
    text: Optional[str] = None,
    coach_id: Optional[str] = None,
):
    """
    Create or update a question definition.

    Free-text questions are stored with weight 0. Edits only affect future
    scoring; stored check-in scores are never recomputed.
    """
    from models import CheckinQuestion

    row = db.query(CheckinQuestion).filter(CheckinQuestion.id == question_id).first()
    if not row:
        row = CheckinQuestion(id=question_id)
        db.add(row)

    row.type = question_type
    row.weight = normalize_question_weight(question_type, weight)
    row.options = [o if isinstance(o, dict) else {"value": str(o)} for o in (options or [])] or None
    row.yes_is_positive = yes_is_positive
    row.text = text
    row.coach_id = coach_id
    db.flush()
    return row
