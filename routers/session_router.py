import logging

from fastapi import APIRouter, Depends

from models.common_models import (
    AnswerRequest,
    AnswerResponse,
    DeleteSessionResponse,
    QuestionResponse,
    SessionStatusResponse,
)
from models.session_models import QuestionnaireDone
from routers.deps import get_store
from services.session_service import is_complete, next_question, progress, submit_answer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/session", tags=["session"])


@router.get("/{session_id}", response_model=SessionStatusResponse)
async def get_session_status(session_id: str, store=Depends(get_store)):
    session = store.get(session_id)
    answered, total = progress(session)

    return SessionStatusResponse(
        session_id=session.id,
        fields=session.fields,
        answers=session.answers,
        questions=session.questions,
        progress=answered,
        total=total,
        is_completed=is_complete(session),
    )


@router.get("/{session_id}/next", response_model=QuestionResponse)
async def get_next_question(session_id: str, store=Depends(get_store)):
    prompt = next_question(store.get(session_id))

    if isinstance(prompt, QuestionnaireDone):
        return QuestionResponse(progress=prompt.progress, total=prompt.total, done=True)

    return QuestionResponse(
        field=prompt.field,
        field_type=prompt.field_type,
        question=prompt.question,
        is_ai_phrased=prompt.is_ai_phrased,
        progress=prompt.progress,
        total=prompt.total,
        done=False,
    )


@router.post("/{session_id}/answers", response_model=AnswerResponse)
async def post_answer(session_id: str, req: AnswerRequest, store=Depends(get_store)):
    session = submit_answer(store, session_id, req.field, req.answer)
    answered, total = progress(session)

    return AnswerResponse(
        message="Answer saved successfully.",
        field=req.field,
        progress=answered,
        total=total,
    )


@router.delete("/{session_id}", response_model=DeleteSessionResponse)
async def delete_session(session_id: str, store=Depends(get_store)):
    store.delete(session_id)
    logger.info("Deleted session %s", session_id)
    return DeleteSessionResponse(session_id=session_id, message="Session deleted.")
