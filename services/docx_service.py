"""
Read and rewrite the text of a .docx package.

A .docx is a zip of XML parts. Only the <w:t> text nodes of the main
document, headers and footers are ever touched; every other byte of the
package is written back exactly as it was read.
"""

import html
import io
import logging
import re
import zipfile
from bisect import bisect_right
from typing import Dict, List, Tuple
from xml.sax.saxutils import escape

from errors import InvalidInputError

logger = logging.getLogger(__name__)

MAIN_PART = "word/document.xml"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

_TEXT_PART = re.compile(r"^word/(document|header\d*|footer\d*)\.xml$")
# <w:t> and <w:t xml:space="preserve">, never <w:t/>, <w:tab/> or <w:tbl>
_TEXT_NODE = re.compile(r"(<w:t(?:\s[^>]*?)?(?<!/)>)(.*?)(</w:t>)", re.DOTALL)
_PARAGRAPH_END = "</w:p>"


def _preserve_space(open_tag: str, text: str) -> str:
    if text and (text[0].isspace() or text[-1].isspace()) and "xml:space" not in open_tag:
        return open_tag[:-1] + ' xml:space="preserve">'
    return open_tag


class TextNodes:
    """The text nodes of one XML part, addressable as a single string.

    Runs of the same paragraph are concatenated directly; paragraphs are
    separated by a newline so a match can never cross a paragraph boundary.
    """

    def __init__(self, xml: str):
        self.xml = xml
        self._matches = list(_TEXT_NODE.finditer(xml))
        self._original = [html.unescape(m.group(2)) for m in self._matches]
        self.texts = list(self._original)
        self._breaks = [
            i > 0 and _PARAGRAPH_END in xml[self._matches[i - 1].end():m.start()]
            for i, m in enumerate(self._matches)
        ]

    def _layout(self) -> Tuple[str, List[int]]:
        parts: List[str] = []
        starts: List[int] = []
        pos = 0
        for i, text in enumerate(self.texts):
            if self._breaks[i]:
                parts.append("\n")
                pos += 1
            starts.append(pos)
            parts.append(text)
            pos += len(text)
        return "".join(parts), starts

    @property
    def text(self) -> str:
        return self._layout()[0]

    @property
    def changed(self) -> bool:
        return self.texts != self._original

    def replace(self, placeholder: str, value: str) -> int:
        return self.replace_all({placeholder: value})

    def replace_all(self, mapping: Dict[str, str]) -> int:
        """Replace every placeholder in one pass, even when split over several runs.

        All matches are found in the current text before any value is written,
        so an inserted value is never matched again. Where spellings overlap
        the longer placeholder wins. The replacement lands in the run holding
        the first character of the placeholder, so it keeps that run's
        formatting. Returns the number of occurrences replaced.
        """
        placeholders = sorted(
            (p for p in mapping if p and "\n" not in p), key=lambda p: (-len(p), p)
        )
        if not placeholders:
            return 0

        pattern = re.compile("|".join(re.escape(p) for p in placeholders))
        joined, starts = self._layout()
        matches = [(m.start(), m.end(), mapping[m.group(0)]) for m in pattern.finditer(joined)]

        # Right to left so earlier offsets stay valid
        for start, end, value in reversed(matches):
            first = bisect_right(starts, start) - 1
            last = bisect_right(starts, end - 1) - 1
            head = start - starts[first]
            tail = end - starts[last]

            if first == last:
                text = self.texts[first]
                self.texts[first] = text[:head] + value + text[tail:]
                continue

            self.texts[first] = self.texts[first][:head] + value
            for i in range(first + 1, last):
                self.texts[i] = ""
            self.texts[last] = self.texts[last][tail:]

        return len(matches)

    def render(self) -> str:
        out: List[str] = []
        pos = 0
        for i, match in enumerate(self._matches):
            if self.texts[i] == self._original[i]:
                continue
            out.append(self.xml[pos:match.start()])
            out.append(_preserve_space(match.group(1), self.texts[i]))
            out.append(escape(self.texts[i]))
            out.append(match.group(3))
            pos = match.end()
        out.append(self.xml[pos:])
        return "".join(out)


class DocxTemplate:
    """An in-memory .docx whose text can be searched and replaced."""

    def __init__(self, data: bytes):
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                self._entries = [(info, archive.read(info.filename)) for info in archive.infolist()]
        except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError) as exc:
            raise InvalidInputError(
                "The uploaded file is not a valid .docx document.", code="invalid_document"
            ) from exc

        if MAIN_PART not in {info.filename for info, _ in self._entries}:
            raise InvalidInputError(
                "The uploaded file has no word/document.xml part.", code="invalid_document"
            )

        self._parts: Dict[str, TextNodes] = {}
        for info, raw in self._entries:
            if not _TEXT_PART.match(info.filename):
                continue
            try:
                self._parts[info.filename] = TextNodes(raw.decode("utf-8"))
            except UnicodeDecodeError as exc:
                raise InvalidInputError(
                    f"Could not decode {info.filename} as UTF-8.", code="invalid_document"
                ) from exc

    @classmethod
    def from_bytes(cls, data: bytes) -> "DocxTemplate":
        return cls(data)

    def _ordered_parts(self) -> List[TextNodes]:
        # Main body first, then headers and footers
        names = sorted(self._parts, key=lambda name: (name != MAIN_PART, name))
        return [self._parts[name] for name in names]

    @property
    def text(self) -> str:
        return "\n".join(part.text for part in self._ordered_parts())

    def replace(self, placeholder: str, value: str) -> int:
        return sum(part.replace(placeholder, value) for part in self._parts.values())

    def replace_all(self, mapping: Dict[str, str]) -> int:
        """Apply a placeholder -> value mapping in a single pass over each part."""
        total = 0
        for name, part in self._parts.items():
            count = part.replace_all(mapping)
            if count:
                logger.debug("Replaced %d placeholder occurrence(s) in %s", count, name)
            total += count
        return total

    def to_bytes(self) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            for info, raw in self._entries:
                part = self._parts.get(info.filename)
                if part is not None and part.changed:
                    raw = part.render().encode("utf-8")
                archive.writestr(info, raw)
        return buffer.getvalue()


def read_document_text(data: bytes) -> str:
    return DocxTemplate(data).text
