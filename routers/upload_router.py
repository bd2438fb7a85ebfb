import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from errors import InvalidInputError
from models.common_models import UploadResponse
from routers.deps import get_oracle, get_store
from services.file_upload_service import read_uploaded_document
from services.placeholder_service import detect_document_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["upload"])


@router.post("/upload", response_model=UploadResponse)
def upload_document(
    document: Optional[UploadFile] = File(None),
    file: Optional[UploadFile] = File(None),
    store=Depends(get_store),
    oracle=Depends(get_oracle),
):
    data = read_uploaded_document(document or file)

    fields = detect_document_fields(data, oracle)
    if not fields:
        raise InvalidInputError(
            "No placeholders found in document. Use {{field_name}} format for placeholders.",
            code="no_fields_found",
        )

    session = store.create(data, fields)
    logger.info("Created session %s with %d field(s)", session.id, len(fields))

    return UploadResponse(
        session_id=session.id,
        fields=session.fields,
        message="Document uploaded successfully.",
    )
