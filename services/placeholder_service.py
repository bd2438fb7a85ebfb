"""
Placeholder extraction.

Two strategies produce the field set of a template: a fixed double-brace
pattern that never fails, and the semantic oracle, which also understands
bracketed names and underscore blanks. Either way the result is a sorted
list of normalized field identifiers.
"""

import logging
import re
from typing import Iterable, List, Optional

from errors import ExtractionFailedError, OracleError, OracleTimeoutError, QuotaExhaustedError
from services.docx_service import read_document_text
from services.oracle_service import FieldOracle

logger = logging.getLogger(__name__)

DOUBLE_BRACE = re.compile(r"\{\{([A-Za-z0-9_.]+)\}\}")
_MARKERS = "[]{}()$"
_WHITESPACE = re.compile(r"\s+")
_INVALID_CHARS = re.compile(r"[^a-z0-9_]")


def normalize_field_name(name: str) -> str:
    """
    "[Company Name]" -> "company_name", "{{client_name}}" -> "client_name".
    Idempotent: normalizing an identifier returns it unchanged.
    """
    field = name.strip().strip(_MARKERS).strip()
    field = field.lower()
    field = _WHITESPACE.sub("_", field)
    return _INVALID_CHARS.sub("", field)


def normalize_fields(names: Iterable[str]) -> List[str]:
    """Normalize, drop empties, dedupe and sort."""
    fields = {normalize_field_name(name) for name in names if isinstance(name, str)}
    fields.discard("")
    return sorted(fields)


def extract_fields(document_text: str) -> List[str]:
    """Deterministic mode: every {{token}} in the text."""
    return normalize_fields(DOUBLE_BRACE.findall(document_text))


def detect_fields(document_text: str, oracle: Optional[FieldOracle] = None) -> List[str]:
    """
    Field set of a document text.

    Without an oracle only {{token}} placeholders are found. With one, the
    oracle's names are unioned with the {{token}} set; if the oracle fails
    the {{token}} set is used alone, and only when that is empty does the
    oracle's failure reach the caller. An empty result is not an error.
    """
    pattern_fields = extract_fields(document_text)
    if oracle is None:
        return pattern_fields

    try:
        names = oracle.detect_fields(document_text)
    except OracleError as exc:
        if pattern_fields:
            logger.warning(
                "Oracle field detection failed (%s); using %d pattern-matched field(s)",
                exc.code,
                len(pattern_fields),
            )
            return pattern_fields
        if isinstance(exc, (QuotaExhaustedError, OracleTimeoutError)):
            raise
        raise ExtractionFailedError(f"Failed to detect fields in document: {exc.message}") from exc

    return normalize_fields(list(names) + pattern_fields)


def detect_document_fields(document: bytes, oracle: Optional[FieldOracle] = None) -> List[str]:
    text = read_document_text(document)
    fields = detect_fields(text, oracle)
    logger.info("Detected %d field(s) in %d characters of text", len(fields), len(text))
    return fields
