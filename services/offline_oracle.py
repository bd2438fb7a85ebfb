"""
Deterministic oracle.

Pattern rules standing in for the language model: bracketed names,
double-brace tokens, and underscore blanks named from the text around
them. Needs no network, so it also serves as the test double.
"""

import re
from collections import Counter
from typing import Dict, List, Optional, Tuple

from models.session_models import FieldHint
from services.field_type_service import infer_field_type
from services.oracle_service import FieldOracle
from services.placeholder_service import DOUBLE_BRACE, normalize_field_name

BRACKETED_NAMED = re.compile(r"\[\s*([A-Za-z0-9][A-Za-z0-9 _.,'&/\-]{0,120}?)\s*\]")
UNDERSCORE_BLANK = re.compile(r"\$?\[\s*_{2,}\s*\]")
QUOTED_TERM = re.compile(r"[“\"]([^”\"]+)[”\"]")
DEFINED_TERM_AFTER = re.compile(r"^\s*\(\s*the\s+[“\"]([^”\"]+)", re.IGNORECASE)

# [1], [a], [iv], [Section 1(d)], [Page 3] are references, not fields
STATIC_REFERENCE = re.compile(
    r"^(?:\d+(?:\.\d+)*|[a-z]|[ivxlc]{1,4}|"
    r"(?:section|article|clause|exhibit|schedule|annex|appendix|page|footnote|note)\b.*)$",
    re.IGNORECASE,
)


def label_from_context(before: str, after: str) -> Optional[str]:
    """Name an underscore blank from its surroundings.

    Prefers a definition that follows it ("(the "Purchase Amount")"), then
    the nearest quoted term before it, then the last few words before it.
    """
    m = DEFINED_TERM_AFTER.search(after)
    if m:
        return m.group(1).strip()
    quoted = QUOTED_TERM.findall(before[-120:])
    if quoted:
        return quoted[-1].strip()
    tokens = re.findall(r"[A-Za-z][A-Za-z\-]+", before[-60:])
    if tokens:
        guess = " ".join(tokens[-3:]).strip()
        if len(guess) >= 3:
            return guess
    return None


def _is_static_reference(name: str) -> bool:
    return bool(STATIC_REFERENCE.match(name.strip()))


def _named_placeholders(text: str) -> List[Tuple[str, str]]:
    """(literal, name) for every {{token}} and [Bracketed Name]."""
    found = [(m.group(0), m.group(1)) for m in DOUBLE_BRACE.finditer(text)]
    for m in BRACKETED_NAMED.finditer(text):
        name = " ".join(m.group(1).split())
        if not name.strip("_ ") or _is_static_reference(name):
            continue
        found.append((m.group(0), name))
    return found


def _underscore_blanks(text: str) -> List[Tuple[str, Optional[str]]]:
    """(literal, context label) for every underscore blank, in document order."""
    blanks = []
    for m in UNDERSCORE_BLANK.finditer(text):
        start, end = m.span()
        label = label_from_context(text[max(0, start - 160):start], text[end:end + 160])
        blanks.append((m.group(0), label))
    return blanks


def _phrase_question(field: str, field_type: str) -> str:
    label = " ".join(word.capitalize() for word in field.split("_") if word)
    if field_type == "date":
        return f"What date should be used for the {label}?"
    if field_type == "number":
        return f"What is the {label}? Please enter a number."
    return f"What is the {label}?"


class OfflineOracle(FieldOracle):
    name = "offline"

    def detect_fields(self, document_text: str) -> List[str]:
        names = [name for _, name in _named_placeholders(document_text)]
        unnamed = 0
        for _, label in _underscore_blanks(document_text):
            if label:
                names.append(label)
            else:
                unnamed += 1
                names.append(f"Blank {unnamed}")
        # Keep first-seen order, drop duplicates by normalized form
        seen = set()
        result = []
        for name in names:
            key = normalize_field_name(name)
            if key and key not in seen:
                seen.add(key)
                result.append(name)
        return result

    def classify_and_phrase(self, fields: List[str]) -> Dict[str, FieldHint]:
        hints = {}
        for field in fields:
            field_type = infer_field_type(field)
            hints[field] = FieldHint(question=_phrase_question(field, field_type), type=field_type)
        return hints

    def resolve_placeholders(self, document_text: str, fields: List[str]) -> Dict[str, str]:
        wanted = set(fields)
        resolved: Dict[str, str] = {}

        for literal, name in _named_placeholders(document_text):
            key = normalize_field_name(name)
            if key in wanted and key not in resolved:
                resolved[key] = literal

        # A blank literal is replaced everywhere, so it is only safe when unique
        literal_counts = Counter(m.group(0) for m in UNDERSCORE_BLANK.finditer(document_text))
        unnamed = 0
        for literal, label in _underscore_blanks(document_text):
            if not label:
                unnamed += 1
                label = f"Blank {unnamed}"
            key = normalize_field_name(label)
            if key in wanted and key not in resolved and literal_counts[literal] == 1:
                resolved[key] = literal

        return resolved
