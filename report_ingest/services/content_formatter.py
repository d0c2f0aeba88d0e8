from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

import bleach

"""Free text -> semantic HTML for report body fields.

Spreadsheet cells hold overview, table-of-contents and segmentation text as
plain lines. ``format_content`` turns them into paragraph, list and heading
blocks using line-pattern heuristics:

1. normalize line endings (including literal ``\\n`` escapes) and tabs
2. split into paragraphs on blank lines
3. classify each line: bullet item, numbered item, heading or plain line
4. group consecutive bullet (``<ul>``) or numbered (``<ol>``) lines into one
   list; any other line closes the open list

Every piece of source text goes through ``bleach.clean`` with a small inline
allow-list, so markup already present in a cell survives only if it is safe.
The formatter is applied once per field to raw source text; it is not meant
to be re-run on its own output.
"""

__all__ = [
    "CONTENT_TYPES",
    "format_content",
    "build_segment_companies",
    "normalize_content_type",
    "sanitize_inline",
]

OVERVIEW = "overview"
TABLE_OF_CONTENTS = "tableOfContents"
SEGMENT_COMPANIES = "segmentCompanies"
CONTENT_TYPES = (OVERVIEW, TABLE_OF_CONTENTS, SEGMENT_COMPANIES)

_CONTENT_TYPE_ALIASES = {
    "overview": OVERVIEW,
    "tableofcontents": TABLE_OF_CONTENTS,
    "table_of_contents": TABLE_OF_CONTENTS,
    "toc": TABLE_OF_CONTENTS,
    "segmentcompanies": SEGMENT_COMPANIES,
    "segment_companies": SEGMENT_COMPANIES,
}

_INLINE_TAGS: list[str] = [
    "a",
    "b",
    "strong",
    "i",
    "em",
    "u",
    "sub",
    "sup",
    "span",
    "code",
]

_INLINE_ATTRS: dict[str, Iterable[str]] = {
    "a": ["href", "title", "target", "rel"],
    "span": ["class"],
}

_ALLOWED_PROTOCOLS = ["http", "https", "mailto"]

BULLET_GLYPHS = "•●○◦▪■□►▶➢➤✓✔·"

_BULLET = re.compile(rf"^\s*(?:[{BULLET_GLYPHS}]\s*|[-*–—]\s+)(?P<text>\S.*)$")
_NUMBERED = re.compile(r"^\s*(?P<num>\d{1,3})\s*[.)\-–](?:\s+|(?=[^\W\d_]))(?P<text>\S.*)$")
_TOC_SECTION = re.compile(r"^\s*(?P<num>\d{1,3}(?:\.\d{1,3})*)[.)]?\s+(?P<text>\S.*)$")
_SEGMENT_BY = re.compile(r"^by\s+[^\W\d_][\w &/,-]{1,40}$", re.IGNORECASE)
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")

_SECTION_VOCABULARY = frozenset(
    {
        "executive summary",
        "introduction",
        "report overview",
        "market overview",
        "market definition",
        "market introduction",
        "scope of the report",
        "report scope",
        "research methodology",
        "methodology",
        "market dynamics",
        "drivers",
        "market drivers",
        "restraints",
        "market restraints",
        "opportunities",
        "market opportunities",
        "challenges",
        "key trends",
        "key market trends",
        "key findings",
        "key insights",
        "market segmentation",
        "regional analysis",
        "regional outlook",
        "competitive landscape",
        "company profiles",
        "key players",
        "recent developments",
        "conclusion",
        "appendix",
    }
)

_SEGMENT_VOCABULARY = frozenset(
    {
        "segmentation",
        "segments",
        "segments covered",
        "companies",
        "key companies",
        "companies covered",
        "companies profiled",
        "key market players",
        "market players",
    }
)

MAX_HEADING_LENGTH = 100
MAX_HEADING_WORDS = 12
DEFAULT_HEADING_LEVEL = 3
TOC_HEADING_LEVEL = 2
MAX_TOC_HEADING_LEVEL = 4


@dataclass(frozen=True)
class _Line:
    kind: str  # bullet | numbered | heading | plain
    text: str
    level: int = 0


def normalize_content_type(content_type: str | None) -> str:
    """Map ``table_of_contents`` / ``tableOfContents`` etc. to one spelling."""
    key = (content_type or OVERVIEW).strip().replace("-", "_")
    return _CONTENT_TYPE_ALIASES.get(key, _CONTENT_TYPE_ALIASES.get(key.lower(), OVERVIEW))


def sanitize_inline(text: str) -> str:
    return bleach.clean(
        text,
        tags=_INLINE_TAGS,
        attributes=_INLINE_ATTRS,
        protocols=_ALLOWED_PROTOCOLS,
        strip=True,
    ).strip()


def _normalize_text(text: str) -> str:
    normalized = str(text)
    if "\\n" in normalized or "\\r" in normalized:
        normalized = normalized.replace("\\r\\n", "\n").replace("\\r", "\n").replace("\\n", "\n")
    normalized = normalized.replace("\r\n", "\n").replace("\r", "\n")
    normalized = normalized.replace("\t", " ").replace("\u00a0", " ")
    return normalized.strip()


def _vocabulary_key(line: str) -> str:
    return " ".join(line.rstrip(":").split()).casefold()


def _is_all_caps(line: str) -> bool:
    letters = [c for c in line if c.isalpha()]
    return (
        len(letters) >= 3
        and all(c.isupper() for c in letters)
        and len(line) <= MAX_HEADING_LENGTH
        and len(line.split()) <= MAX_HEADING_WORDS
    )


def _looks_like_heading(line: str, content_type: str) -> bool:
    if len(line) > MAX_HEADING_LENGTH:
        return False
    key = _vocabulary_key(line)
    if key in _SECTION_VOCABULARY:
        return True
    if content_type == SEGMENT_COMPANIES and (key in _SEGMENT_VOCABULARY or _SEGMENT_BY.match(key)):
        return True
    if line.endswith(":") and len(line.split()) <= MAX_HEADING_WORDS:
        return True
    return _is_all_caps(line)


def _classify(raw_line: str, content_type: str) -> _Line:
    line = raw_line.strip()

    m = _BULLET.match(line)
    if m:
        return _Line("bullet", m.group("text").strip())

    if content_type == TABLE_OF_CONTENTS:
        # Section numbers drive the heading depth: 1. -> h2, 1.1 -> h3, 1.1.1 -> h4
        m = _TOC_SECTION.match(line)
        if m:
            depth = m.group("num").count(".") + 1
            level = min(TOC_HEADING_LEVEL + depth - 1, MAX_TOC_HEADING_LEVEL)
            return _Line("heading", f"{m.group('num')} {m.group('text').strip()}".rstrip(":"), level)
    else:
        m = _NUMBERED.match(line)
        if m:
            return _Line("numbered", m.group("text").strip())

    if _looks_like_heading(line, content_type):
        level = TOC_HEADING_LEVEL if content_type == TABLE_OF_CONTENTS else DEFAULT_HEADING_LEVEL
        return _Line("heading", line.rstrip(":").strip(), level)

    return _Line("plain", line)


def _render_paragraph(lines: list[str], content_type: str) -> list[str]:
    blocks: list[str] = []
    plain: list[str] = []
    list_kind: str | None = None
    items: list[str] = []

    def flush_plain() -> None:
        if plain:
            blocks.append(f"<p>{'<br>'.join(plain)}</p>")
            plain.clear()

    def flush_list() -> None:
        nonlocal list_kind
        if list_kind and items:
            tag = "ul" if list_kind == "bullet" else "ol"
            inner = "".join(f"<li>{item}</li>" for item in items)
            blocks.append(f"<{tag}>{inner}</{tag}>")
        items.clear()
        list_kind = None

    for raw in lines:
        if not raw.strip():
            continue
        line = _classify(raw, content_type)
        text = sanitize_inline(line.text)
        if not text:
            continue
        if line.kind in ("bullet", "numbered"):
            flush_plain()
            if list_kind != line.kind:
                flush_list()
                list_kind = line.kind
            items.append(text)
        elif line.kind == "heading":
            flush_plain()
            flush_list()
            blocks.append(f"<h{line.level}>{text}</h{line.level}>")
        else:
            flush_list()
            plain.append(text)

    flush_plain()
    flush_list()
    return blocks


def format_content(text: str | None, content_type: str = OVERVIEW) -> str:
    """Convert free text into sanitized semantic markup.

    Args:
        text: Raw cell text (may be None or empty)
        content_type: ``overview``, ``tableOfContents`` or ``segmentCompanies``

    Returns:
        HTML blocks joined by newlines; "" for empty or whitespace-only input
    """
    if text is None:
        return ""
    normalized = _normalize_text(text)
    if not normalized:
        return ""
    ctype = normalize_content_type(content_type)
    blocks: list[str] = []
    for paragraph in _PARAGRAPH_BREAK.split(normalized):
        blocks.extend(_render_paragraph(paragraph.split("\n"), ctype))
    return "\n".join(blocks)


def build_segment_companies(
    combined: str,
    segmentation: str = "",
    companies: str = "",
    overview: str = "",
    fallback: str = "overview",
) -> str:
    """Derive the segmentation/companies markup for a report.

    Priority: the combined column, then the two legacy columns (each under
    its own heading), then the overview text when ``fallback`` is
    ``"overview"``. ``fallback="none"`` leaves the field empty instead.
    """
    if combined and combined.strip():
        return format_content(combined, SEGMENT_COMPANIES)
    parts = []
    if segmentation and segmentation.strip():
        parts.append(f"Segmentation:\n{segmentation.strip()}")
    if companies and companies.strip():
        parts.append(f"Companies:\n{companies.strip()}")
    if parts:
        return format_content("\n\n".join(parts), SEGMENT_COMPANIES)
    if fallback == "overview" and overview and overview.strip():
        return format_content(overview, SEGMENT_COMPANIES)
    return ""
