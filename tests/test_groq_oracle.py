from types import SimpleNamespace
from unittest.mock import MagicMock

import groq
import httpx
import pytest

from errors import OracleError, OracleTimeoutError, QuotaExhaustedError
from services.groq_oracle import GroqOracle, build_detection_prompt, is_quota_error
from services.oracle_service import TRUNCATION_MARKER

REQUEST = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def make_oracle(reply=None, error=None):
    client = MagicMock()
    if error is not None:
        client.chat.completions.create.side_effect = error
    else:
        client.chat.completions.create.return_value = completion(reply)
    return GroqOracle(api_key="test-key", model="test-model", client=client), client


def status_error(status, body):
    response = httpx.Response(status, request=REQUEST, text=body)
    return groq.APIStatusError("error", response=response, body=None)


def test_detect_fields_parses_json_array():
    oracle, client = make_oracle('["Company Name", "Investor Name"]')
    assert oracle.detect_fields("text") == ["Company Name", "Investor Name"]

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["messages"][0]["role"] == "system"


def test_detect_fields_accepts_fenced_and_wrapped_replies():
    oracle, _ = make_oracle('```json\n["Date"]\n```')
    assert oracle.detect_fields("text") == ["Date"]

    oracle, _ = make_oracle('Here are the fields: ["Date", 3] hope this helps')
    assert oracle.detect_fields("text") == ["Date"]


def test_detect_fields_rejects_unparseable_reply():
    oracle, _ = make_oracle("I could not find anything")
    with pytest.raises(OracleError):
        oracle.detect_fields("text")


def test_detect_fields_truncates_long_documents():
    oracle, client = make_oracle("[]")
    oracle.detect_fields("x" * 20000)

    prompt = client.chat.completions.create.call_args.kwargs["messages"][1]["content"]
    assert TRUNCATION_MARKER in prompt
    assert "x" * 10001 not in prompt


def test_rate_limit_maps_to_quota_exhausted():
    error = groq.RateLimitError(
        "slow down", response=httpx.Response(429, request=REQUEST), body=None
    )
    oracle, _ = make_oracle(error=error)
    with pytest.raises(QuotaExhaustedError):
        oracle.detect_fields("text")


def test_quota_body_maps_to_quota_exhausted():
    oracle, _ = make_oracle(error=status_error(403, '{"error": "RESOURCE_EXHAUSTED"}'))
    with pytest.raises(QuotaExhaustedError):
        oracle.detect_fields("text")


def test_server_error_maps_to_oracle_failure():
    oracle, _ = make_oracle(error=status_error(500, "internal"))
    with pytest.raises(OracleError) as excinfo:
        oracle.detect_fields("text")
    assert excinfo.value.code == "oracle_failed"


def test_timeout_and_connection_errors():
    oracle, _ = make_oracle(error=groq.APITimeoutError(request=REQUEST))
    with pytest.raises(OracleTimeoutError):
        oracle.detect_fields("text")

    oracle, _ = make_oracle(error=groq.APIConnectionError(request=REQUEST))
    with pytest.raises(OracleError) as excinfo:
        oracle.detect_fields("text")
    assert excinfo.value.code == "oracle_failed"


def test_empty_choices_is_an_oracle_failure():
    oracle, client = make_oracle()
    client.chat.completions.create.return_value = SimpleNamespace(choices=[])
    with pytest.raises(OracleError):
        oracle.detect_fields("text")


def test_classify_and_phrase_reads_questions_and_types():
    reply = (
        '{"effective_date": {"question": "When does it start?", "type": "DATE"},'
        ' "company_name": "What is the company called?",'
        ' "cap": {"question": "What is the cap?", "type": "currency"},'
        ' "broken": {"type": "text"}}'
    )
    oracle, _ = make_oracle(reply)

    hints = oracle.classify_and_phrase(["effective_date", "company_name", "cap", "broken"])

    assert hints["effective_date"].question == "When does it start?"
    assert hints["effective_date"].type == "date"
    assert hints["company_name"].type is None
    assert hints["cap"].type is None
    assert "broken" not in hints


def test_classify_and_phrase_skips_call_without_fields():
    oracle, client = make_oracle("{}")
    assert oracle.classify_and_phrase([]) == {}
    client.chat.completions.create.assert_not_called()


def test_resolve_placeholders_keeps_non_empty_strings():
    oracle, _ = make_oracle('{"company_name": "[COMPANY]", "date": "", "amount": null}')
    assert oracle.resolve_placeholders("text", ["company_name", "date", "amount"]) == {
        "company_name": "[COMPANY]"
    }


def test_is_quota_error():
    assert is_quota_error(429, "")
    assert is_quota_error(400, "Rate limit reached for model")
    assert is_quota_error(None, "quota_exceeded")
    assert not is_quota_error(500, "internal server error")


def test_detection_prompt_embeds_document_text():
    prompt = build_detection_prompt("Dear [Client Name]")
    assert "Dear [Client Name]" in prompt
    assert "{{client_name}}" in prompt
