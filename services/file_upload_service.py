import os
from typing import Optional

from fastapi import UploadFile

import config
from errors import InvalidInputError


def read_uploaded_document(file: Optional[UploadFile], max_bytes: Optional[int] = None) -> bytes:
    """
    Validate the uploaded template and return its bytes.
    Nothing is written to disk; the session keeps the bytes in memory.
    """
    if file is None or not file.filename:
        raise InvalidInputError(
            "No document file uploaded. Please upload a .docx file with field name 'document' or 'file'.",
            code="missing_file",
        )

    # Extension is more reliable than the client's Content-Type
    ext = os.path.splitext(file.filename)[1]
    if ext.lower() != ".docx":
        raise InvalidInputError("Only .docx files are supported.", code="invalid_file_type")

    limit = config.MAX_UPLOAD_BYTES if max_bytes is None else max_bytes
    data = file.file.read(limit + 1)
    if len(data) > limit:
        raise InvalidInputError(
            f"Document is larger than {limit // (1024 * 1024)} MB.", code="file_too_large"
        )
    if not data:
        raise InvalidInputError("Uploaded document is empty.", code="invalid_document")
    return data
