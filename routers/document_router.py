from fastapi import APIRouter, Depends
from fastapi.responses import Response

from routers.deps import get_oracle, get_store
from services.docx_service import DOCX_MIME
from services.session_service import generate_document

router = APIRouter(prefix="/api/session", tags=["document"])


@router.post("/{session_id}/generate")
def generate(session_id: str, store=Depends(get_store), oracle=Depends(get_oracle)):
    filled = generate_document(store, session_id, oracle)

    return Response(
        content=filled,
        media_type=DOCX_MIME,
        headers={"Content-Disposition": "attachment; filename=filled_document.docx"},
    )
