"""
Document substitution engine.

Turns (original .docx bytes, answers) into the filled .docx. Each field is
first resolved to the placeholder literal(s) it appears as, then every
occurrence of each literal is replaced with the answer.

Resolution modes:
  exact     - no oracle: only "{{field}}" is replaced.
  oracle    - the oracle names the literal for each field; fields it leaves
              out get the heuristic spellings below.
  heuristic - the oracle failed: "{{field}}", "[field]", "[Field Name]"
              and "[fieldname]" are tried for every field.

The heuristic spellings are guesses. A "[Field Name]" variant that happens
to match unrelated bracketed text in the document is replaced as well.
"""

import logging
from typing import Dict, Optional, Tuple

from errors import DocFillError, GenerationFailedError, OracleError
from services.docx_service import DocxTemplate
from services.oracle_service import FieldOracle
from services.placeholder_service import normalize_field_name
from services.session_service import humanize_field_name

logger = logging.getLogger(__name__)


def exact_placeholder_map(answers: Dict[str, str]) -> Dict[str, str]:
    return {"{{" + field + "}}": answer for field, answer in answers.items()}


def candidate_placeholder_map(answers: Dict[str, str]) -> Dict[str, str]:
    placeholders: Dict[str, str] = {}
    for field, answer in answers.items():
        placeholders["{{" + field + "}}"] = answer
        placeholders["[" + field + "]"] = answer
        placeholders["[" + humanize_field_name(field) + "]"] = answer
        placeholders["[" + field.replace("_", "") + "]"] = answer
    return placeholders


def resolve_placeholder_map(
    document_text: str, answers: Dict[str, str], oracle: Optional[FieldOracle] = None
) -> Tuple[Dict[str, str], str]:
    """Placeholder literal -> answer, plus the mode that produced it."""
    if oracle is None:
        return exact_placeholder_map(answers), "exact"

    try:
        resolved = oracle.resolve_placeholders(document_text, sorted(answers))
    except OracleError as exc:
        logger.warning("Placeholder resolution failed (%s); using heuristic spellings", exc.code)
        return candidate_placeholder_map(answers), "heuristic"

    placeholder_map: Dict[str, str] = {}
    matched = set()
    for field, literal in resolved.items():
        key = field if field in answers else normalize_field_name(field)
        if key in answers:
            placeholder_map[literal] = answers[key]
            matched.add(key)

    unresolved = {field: answer for field, answer in answers.items() if field not in matched}
    for literal, answer in candidate_placeholder_map(unresolved).items():
        placeholder_map.setdefault(literal, answer)

    return placeholder_map, "oracle"


def fill_document(
    document: bytes, answers: Dict[str, str], oracle: Optional[FieldOracle] = None
) -> bytes:
    """
    Fill a .docx template. Placeholders that cannot be located are left
    as they are; only an unreadable or unwritable document is an error.
    """
    try:
        template = DocxTemplate.from_bytes(document)
    except DocFillError as exc:
        raise GenerationFailedError(f"Failed to read document: {exc.message}") from exc

    placeholder_map, mode = resolve_placeholder_map(template.text, answers, oracle)
    replaced = template.replace_all(placeholder_map)
    logger.info(
        "Filled document in %s mode: %d placeholder spelling(s), %d replacement(s)",
        mode,
        len(placeholder_map),
        replaced,
    )

    try:
        return template.to_bytes()
    except (OSError, ValueError) as exc:
        raise GenerationFailedError(f"Failed to write filled document: {exc}") from exc
