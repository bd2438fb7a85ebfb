"""Shared fixtures: minimal .docx builders, stores, stub oracles and an API client."""

import io
import zipfile
from typing import Dict, List, Optional, Sequence, Union
from xml.sax.saxutils import escape

import pytest
from fastapi.testclient import TestClient

from errors import OracleError
from main import create_app
from models.session_models import FieldHint
from routers.deps import get_oracle
from services.oracle_service import FieldOracle
from services.session_store import SessionStore

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"

CONTENT_TYPES = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
    '<Default Extension="xml" ContentType="application/xml"/>'
    '<Override PartName="/word/document.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>'
    "</Types>"
)
PACKAGE_RELS = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
    '<Relationship Id="rId1" '
    'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" '
    'Target="word/document.xml"/>'
    "</Relationships>"
)

# A paragraph is a string (one plain run) or a list of runs;
# a run is a string or a (text, bold) tuple.
Run = Union[str, tuple]
Paragraph = Union[str, Sequence[Run]]


def run_xml(run: Run) -> str:
    text, bold = (run, False) if isinstance(run, str) else run
    props = "<w:rPr><w:b/></w:rPr>" if bold else ""
    return f'<w:r>{props}<w:t xml:space="preserve">{escape(text)}</w:t></w:r>'


def paragraph_xml(paragraph: Paragraph) -> str:
    runs = [paragraph] if isinstance(paragraph, str) else list(paragraph)
    return '<w:p><w:pPr><w:pStyle w:val="Body"/></w:pPr>' + "".join(run_xml(r) for r in runs) + "</w:p>"


def part_xml(root: str, paragraphs: Sequence[Paragraph]) -> str:
    body = "".join(paragraph_xml(p) for p in paragraphs)
    if root == "document":
        body = f"<w:body>{body}</w:body>"
    tag = {"document": "w:document", "header": "w:hdr", "footer": "w:ftr"}[root]
    return f'<?xml version="1.0" encoding="UTF-8" standalone="yes"?><{tag} xmlns:w="{W_NS}">{body}</{tag}>'


def build_docx(
    paragraphs: Sequence[Paragraph],
    header: Optional[Sequence[Paragraph]] = None,
    footer: Optional[Sequence[Paragraph]] = None,
) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        archive.writestr("[Content_Types].xml", CONTENT_TYPES)
        archive.writestr("_rels/.rels", PACKAGE_RELS)
        archive.writestr("word/document.xml", part_xml("document", paragraphs))
        if header is not None:
            archive.writestr("word/header1.xml", part_xml("header", header))
        if footer is not None:
            archive.writestr("word/footer1.xml", part_xml("footer", footer))
        archive.writestr("word/styles.xml", '<?xml version="1.0"?><w:styles xmlns:w="%s"/>' % W_NS)
    return buffer.getvalue()


def read_part(data: bytes, name: str = "word/document.xml") -> str:
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return archive.read(name).decode("utf-8")


class StubOracle(FieldOracle):
    """Oracle with canned answers; pass an exception to make a call fail."""

    name = "stub"

    def __init__(
        self,
        fields: Union[List[str], Exception, None] = None,
        hints: Union[Dict[str, FieldHint], Exception, None] = None,
        placeholders: Union[Dict[str, str], Exception, None] = None,
    ):
        self.fields = fields if fields is not None else []
        self.hints = hints if hints is not None else {}
        self.placeholders = placeholders if placeholders is not None else {}
        self.calls: List[str] = []

    def _answer(self, value):
        if isinstance(value, Exception):
            raise value
        return value

    def detect_fields(self, document_text):
        self.calls.append("detect_fields")
        return self._answer(self.fields)

    def classify_and_phrase(self, fields):
        self.calls.append("classify_and_phrase")
        return self._answer(self.hints)

    def resolve_placeholders(self, document_text, fields):
        self.calls.append("resolve_placeholders")
        return self._answer(self.placeholders)


@pytest.fixture
def make_docx():
    return build_docx


@pytest.fixture
def store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def failing_oracle() -> StubOracle:
    error = OracleError("boom")
    return StubOracle(fields=error, hints=error, placeholders=error)


@pytest.fixture
def app(store):
    return create_app(store=store, oracle_mode="offline")


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def use_oracle(app):
    """Swap the app's oracle for the duration of a test."""

    def _use(oracle):
        app.dependency_overrides[get_oracle] = lambda: oracle
        return oracle

    yield _use
    app.dependency_overrides.clear()
