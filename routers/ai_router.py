from fastapi import APIRouter, Depends

from models.common_models import GenerateQuestionsResponse
from routers.deps import get_oracle, get_store
from services.session_service import enrich_questions

router = APIRouter(prefix="/api/session", tags=["ai"])


@router.post("/{session_id}/ai/questions", response_model=GenerateQuestionsResponse)
def generate_questions(session_id: str, store=Depends(get_store), oracle=Depends(get_oracle)):
    questions = enrich_questions(store, session_id, oracle)

    if questions is None:
        return GenerateQuestionsResponse(
            questions={},
            count=0,
            message="AI question generation is unavailable; default questions will be used.",
        )

    return GenerateQuestionsResponse(
        questions=questions,
        count=len(questions),
        message="AI questions generated successfully.",
    )
