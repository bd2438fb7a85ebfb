"""
Semantic oracle contract.

The oracle does the context-aware work the fixed patterns cannot: naming
blanks from their surroundings, phrasing questions, and finding how a field
is literally spelled in a document. Implementations live in groq_oracle
(network) and offline_oracle (deterministic).
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import config
from models.session_models import FieldHint

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "... [truncated]"


class FieldOracle(ABC):
    name = "oracle"

    @abstractmethod
    def detect_fields(self, document_text: str) -> List[str]:
        """Human-readable names of the dynamic placeholders in the text."""

    @abstractmethod
    def classify_and_phrase(self, fields: List[str]) -> Dict[str, FieldHint]:
        """A question and an input type for each field."""

    @abstractmethod
    def resolve_placeholders(self, document_text: str, fields: List[str]) -> Dict[str, str]:
        """Map each field to the placeholder text exactly as it appears in the document."""


def truncate_document(text: str, max_chars: Optional[int] = None) -> str:
    limit = config.ORACLE_MAX_CHARS if max_chars is None else max_chars
    if len(text) > limit:
        return text[:limit] + TRUNCATION_MARKER
    return text


def _strip_code_fence(raw: str) -> str:
    content = raw.strip()
    if not content.startswith("```"):
        return content
    lines = content.split("\n")[1:]
    if lines and lines[-1].strip().startswith("```"):
        lines = lines[:-1]
    return "\n".join(lines).strip()


def parse_json_reply(raw: Optional[str], expected: type) -> Optional[Any]:
    """
    Pull a JSON list or object out of a model reply.
    Returns None when nothing of the expected type can be parsed.
    """
    if not raw:
        return None

    content = _strip_code_fence(raw)

    try:
        parsed = json.loads(content)
        if isinstance(parsed, expected):
            return parsed
    except ValueError:
        pass

    # Models sometimes wrap the JSON in prose
    open_char, close_char = ("[", "]") if expected is list else ("{", "}")
    start = content.find(open_char)
    end = content.rfind(close_char)
    if start != -1 and end > start:
        try:
            parsed = json.loads(content[start : end + 1])
            if isinstance(parsed, expected):
                return parsed
        except ValueError:
            pass

    logger.warning("Could not parse %s from oracle reply", expected.__name__)
    return None


def build_oracle(mode: Optional[str] = None) -> Optional[FieldOracle]:
    """Oracle for the configured mode: "groq", "offline" or "none"."""
    mode = (mode or config.ORACLE_MODE).lower()

    if mode == "none":
        return None
    if mode == "groq":
        if not config.GROQ_API_KEY:
            logger.warning("ORACLE_MODE=groq but GROQ_API_KEY is not set; using offline oracle")
        else:
            from services.groq_oracle import GroqOracle

            return GroqOracle(
                api_key=config.GROQ_API_KEY,
                model=config.GROQ_MODEL,
                timeout=config.ORACLE_TIMEOUT_SECONDS,
                max_retries=config.ORACLE_MAX_RETRIES,
            )
    elif mode != "offline":
        raise ValueError(f"Unknown ORACLE_MODE: {mode!r}")

    from services.offline_oracle import OfflineOracle

    return OfflineOracle()
