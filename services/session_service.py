"""
Question/answer flow over a session.

A session is Collecting while any field is unanswered and Complete once
every field has an answer. Questions are always served in the fixed field
order, so the next question is the first unanswered field, whatever order
answers arrived in.

Oracle calls never run while a session lock is held: the session is read,
the oracle is asked, and the result is committed with a separate update.
"""

import logging
from typing import Dict, List, Optional, Tuple, Union

from errors import FieldNotInSessionError, IncompleteStateError, OracleError
from models.session_models import FieldHint, FieldPrompt, QuestionnaireDone, Session
from services.oracle_service import FieldOracle
from services.session_store import SessionStore

logger = logging.getLogger(__name__)


def humanize_field_name(field: str) -> str:
    """company_name -> Company Name"""
    return " ".join(word[:1].upper() + word[1:] for word in field.split("_") if word)


def default_question(field: str) -> str:
    return f"What is the {humanize_field_name(field)}?"


def progress(session: Session) -> Tuple[int, int]:
    return len(session.answers), len(session.fields)


def unanswered_fields(session: Session) -> List[str]:
    return [field for field in session.fields if field not in session.answers]


def is_complete(session: Session) -> bool:
    return len(session.answers) == len(session.fields)


def next_question(session: Session) -> Union[FieldPrompt, QuestionnaireDone]:
    answered, total = progress(session)
    for field in session.fields:
        if field in session.answers:
            continue
        question = session.questions.get(field)
        return FieldPrompt(
            field=field,
            field_type=session.field_types.get(field, "text"),
            question=question or default_question(field),
            is_ai_phrased=question is not None,
            progress=answered,
            total=total,
        )
    return QuestionnaireDone(progress=answered, total=total)


def record_answer(session: Session, field: str, value: str) -> None:
    # Exact match only; "Company Name" is not "company_name"
    if field not in session.fields:
        raise FieldNotInSessionError(field)
    session.answers[field] = value


def submit_answer(store: SessionStore, session_id: str, field: str, value: str) -> Session:
    session = store.update(session_id, lambda s: record_answer(s, field, value))
    answered, total = progress(session)
    logger.info("Session %s: answered %s (%d/%d)", session_id, field, answered, total)
    return session


def apply_field_hints(session: Session, hints: Dict[str, FieldHint]) -> Dict[str, str]:
    """Store oracle questions and type overrides for fields the session has."""
    applied = {}
    for field, hint in hints.items():
        if field not in session.fields:
            continue
        session.questions[field] = hint.question
        if hint.type:
            session.field_types[field] = hint.type
        applied[field] = hint.question
    return applied


def enrich_questions(
    store: SessionStore, session_id: str, oracle: Optional[FieldOracle]
) -> Optional[Dict[str, str]]:
    """
    Ask the oracle for questions and field types and commit them.
    Returns None when the oracle is missing or fails; the session is then
    left as it was and the default questions keep being served.
    """
    session = store.get(session_id)
    if oracle is None:
        return None

    try:
        hints = oracle.classify_and_phrase(list(session.fields))
    except OracleError as exc:
        logger.warning("Question enrichment failed for session %s (%s)", session_id, exc.code)
        return None

    applied: Dict[str, str] = {}

    def commit(s: Session) -> None:
        applied.update(apply_field_hints(s, hints))

    store.update(session_id, commit)
    logger.info("Session %s: stored %d %s question(s)", session_id, len(applied), oracle.name)
    return applied


def generate_document(store: SessionStore, session_id: str, oracle: Optional[FieldOracle]) -> bytes:
    from services.fill_service import fill_document

    session = store.get(session_id)
    missing = unanswered_fields(session)
    if missing:
        raise IncompleteStateError(missing)

    filled = fill_document(session.original_document, dict(session.answers), oracle)
    logger.info("Session %s: generated document (%d bytes)", session_id, len(filled))
    return filled
