import json
import logging
from typing import Dict, List, Optional

import groq
from groq import Groq

from errors import OracleError, OracleTimeoutError, QuotaExhaustedError
from models.session_models import FIELD_TYPES, FieldHint
from services.oracle_service import FieldOracle, parse_json_reply, truncate_document

logger = logging.getLogger(__name__)

QUOTA_KEYWORDS = ["quota", "resource_exhausted", "rate limit", "rate_limit", "quota_exceeded"]

DETECTION_SYSTEM_PROMPT = (
    "You are an expert at analyzing legal documents and identifying dynamic placeholders "
    "that need to be filled in. You can tell placeholders such as [Company Name], "
    "{{client_name}} or $[__________] apart from static template text such as "
    "[Section 1(d)] or [1]. Always respond with valid JSON only."
)
PHRASING_SYSTEM_PROMPT = (
    "You are a helpful legal assistant that turns technical field names into natural, "
    "conversational questions. Always respond with valid JSON only."
)
RESOLUTION_SYSTEM_PROMPT = (
    "You are an expert at analyzing documents and finding placeholders. "
    "Always respond with valid JSON only."
)


def is_quota_error(status_code: Optional[int], body: str) -> bool:
    """429, or a body that talks about quotas or rate limits."""
    if status_code == 429:
        return True
    text = (body or "").lower()
    return any(k in text for k in QUOTA_KEYWORDS)


def build_detection_prompt(document_text: str) -> str:
    return f"""
Analyze the following document text and identify all DYNAMIC PLACEHOLDERS that need to be filled in with user data.

INCLUDE placeholders like:
- [Company Name], [Investor Name], [Date]
- {{{{client_name}}}}, {{{{contract_amount}}}}
- $[_____________] or [__________] when they stand for a value to fill in (use the nearby text to name them)
- Any other text that is clearly a variable to be filled in

EXCLUDE:
- Section references like [Section 1(d)], [1], [a], [i]
- Footnote markers and page numbers
- Legal citations and other static text in brackets

For underscore blanks, name the field from its context. For example
"$[_____________] (the "Purchase Amount")" is "Purchase Amount".

Document text:
{document_text}

Return ONLY a JSON array of the field names you found, for example:
["Company Name", "Investor Name", "Date of Safe", "Purchase Amount"]
"""


def build_phrasing_prompt(fields: List[str]) -> str:
    field_list = "\n- ".join(fields)
    return f"""
A legal document has the following placeholder fields:
- {field_list}

For each field write a friendly, professional question to ask the client, and
classify the expected answer as one of "text", "number" or "date".

Return ONLY a JSON object keyed by the exact field names above, for example:
{{"company_name": {{"question": "What is the legal name of the company?", "type": "text"}}}}
"""


def build_resolution_prompt(document_text: str, fields: List[str]) -> str:
    return f"""
Given this document text and a list of field names, find the EXACT placeholder text in the document that should be replaced for each field.

Fields to find: {json.dumps(fields)}

Document text:
{document_text}

A placeholder may look like [Field Name], {{{{field_name}}}}, $[___________] or any other placeholder format.
Return the text exactly as it appears in the document, including brackets, dollar signs and underscores.

Return ONLY a JSON object mapping each field name to its placeholder text, for example:
{{"company_name": "[COMPANY]", "purchase_amount": "$[_____________]"}}
"""


class GroqOracle(FieldOracle):
    name = "groq"

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout: float = 30.0,
        max_retries: int = 1,
        client: Optional[Groq] = None,
    ):
        self.model = model
        self.client = client or Groq(api_key=api_key, timeout=timeout, max_retries=max_retries)

    def _complete(self, system_prompt: str, prompt: str) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.0,
            )
        except groq.RateLimitError as exc:
            raise QuotaExhaustedError("AI quota exhausted. Please try again later.") from exc
        except groq.APITimeoutError as exc:
            raise OracleTimeoutError("AI request timed out.") from exc
        except groq.APIStatusError as exc:
            if is_quota_error(exc.status_code, exc.response.text):
                raise QuotaExhaustedError("AI quota exhausted. Please try again later.") from exc
            raise OracleError(f"Groq API error (status {exc.status_code})") from exc
        except groq.APIConnectionError as exc:
            raise OracleError(f"Failed to reach Groq API: {exc}") from exc

        if not response.choices:
            raise OracleError("No response from Groq")
        return response.choices[0].message.content or ""

    def detect_fields(self, document_text: str) -> List[str]:
        prompt = build_detection_prompt(truncate_document(document_text))
        raw = self._complete(DETECTION_SYSTEM_PROMPT, prompt)

        names = parse_json_reply(raw, list)
        if names is None:
            raise OracleError("Failed to parse AI-detected fields")
        return [name for name in names if isinstance(name, str)]

    def classify_and_phrase(self, fields: List[str]) -> Dict[str, FieldHint]:
        if not fields:
            return {}
        raw = self._complete(PHRASING_SYSTEM_PROMPT, build_phrasing_prompt(fields))

        payload = parse_json_reply(raw, dict)
        if payload is None:
            raise OracleError("Failed to parse AI-generated questions")

        hints = {}
        for field, item in payload.items():
            # Older prompt style: plain field -> question
            if isinstance(item, str):
                item = {"question": item}
            if not isinstance(item, dict) or not str(item.get("question") or "").strip():
                continue
            field_type = str(item.get("type", "")).strip().lower()
            hint = {"question": str(item["question"]).strip()}
            if field_type in FIELD_TYPES:
                hint["type"] = field_type
            hints[field] = FieldHint(**hint)
        return hints

    def resolve_placeholders(self, document_text: str, fields: List[str]) -> Dict[str, str]:
        if not fields:
            return {}
        prompt = build_resolution_prompt(truncate_document(document_text), fields)
        raw = self._complete(RESOLUTION_SYSTEM_PROMPT, prompt)

        mapping = parse_json_reply(raw, dict)
        if mapping is None:
            raise OracleError("Failed to parse placeholder mapping")
        return {
            field: placeholder
            for field, placeholder in mapping.items()
            if isinstance(placeholder, str) and placeholder.strip()
        }
