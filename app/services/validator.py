from __future__ import annotations

import json
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.core.errors import SchemaValidationError
from app.services.sanitize import sanitize_html

FENCED_JSON_RE = re.compile(r"```(?:json)?\s*\n(.*?)```", re.DOTALL)
OBJECT_RE = re.compile(r"\{[\s\S]*\}")

# Citation years outside this range are dropped rather than stored
MIN_YEAR, MAX_YEAR = 0, 9999

class CitationDraft(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    source: str = Field(min_length=1)
    author: Optional[str] = None
    year: Optional[int] = None
    url: Optional[str] = None
    quote: Optional[str] = None

    @field_validator("year", mode="before")
    @classmethod
    def _lenient_year(cls, v: Any) -> Any:
        # "n.d.", "2020a" and friends are not worth failing a whole article over
        if isinstance(v, bool):
            return None
        year = None
        if isinstance(v, int):
            year = v
        elif isinstance(v, float) and v.is_integer():
            year = int(v)
        elif isinstance(v, str) and v.strip().isdecimal() and len(v.strip()) <= len(str(MAX_YEAR)):
            year = int(v.strip())
        if year is None or not MIN_YEAR <= year <= MAX_YEAR:
            return None
        return year

    @field_validator("author", "url", "quote", mode="before")
    @classmethod
    def _optional_text(cls, v: Any) -> Any:
        if v is None:
            return None
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        if isinstance(v, str) and not v.strip():
            return None
        return v

class ArticleDraft(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    summary: str = Field(min_length=1)
    citations: list[CitationDraft] = Field(default_factory=list)

    @field_validator("citations", mode="before")
    @classmethod
    def _null_citations(cls, v: Any) -> Any:
        return [] if v is None else v

def parse_provider_reply(text: str | None) -> Any:
    """Extract the JSON object from a reply that may carry prose or a code fence."""
    if not text or not text.strip():
        raise SchemaValidationError("empty reply from text provider")

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    m = FENCED_JSON_RE.search(text)
    if m:
        try:
            return json.loads(m.group(1).strip())
        except json.JSONDecodeError:
            pass

    m = OBJECT_RE.search(text)
    if m:
        try:
            return json.loads(m.group(0))
        except json.JSONDecodeError:
            pass

    raise SchemaValidationError("no JSON object found in text provider reply")

def validate(raw: Any) -> ArticleDraft:
    if not isinstance(raw, dict):
        raise SchemaValidationError(f"expected a JSON object, got {type(raw).__name__}")
    try:
        draft = ArticleDraft.model_validate(raw)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise SchemaValidationError(f"invalid article reply, bad fields: {', '.join(fields)}") from e

    content = sanitize_html(draft.content)
    if not content:
        raise SchemaValidationError("article content is empty after sanitization")
    return draft.model_copy(update={"content": content})
