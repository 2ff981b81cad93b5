"""Parse classifier output into a two-variant intent union."""

from __future__ import annotations

import json
import logging
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)


class IngestIntent(BaseModel):
    """Input is a note to be saved."""

    intent: Literal["ingest"] = "ingest"
    title: Optional[str] = None
    text: Optional[str] = None


class QueryIntent(BaseModel):
    """Input is a question about saved notes."""

    intent: Literal["query"] = "query"
    title: Optional[str] = None
    text: Optional[str] = None


Intent = Annotated[Union[IngestIntent, QueryIntent], Field(discriminator="intent")]

_intent_adapter: TypeAdapter[Any] = TypeAdapter(Intent)


def _clean_json_text(text: str) -> str:
    """Strip Markdown code fences and text around the outermost braces."""
    s = text.strip()
    if s.startswith("```"):
        lines = s.splitlines()
        closing = next(
            (i for i, line in enumerate(lines[1:], start=1) if line.strip().startswith("```")),
            None,
        )
        if closing is not None:
            s = "\n".join(lines[1:closing]).strip()
    if s.startswith("{") and s.endswith("}"):
        return s
    start, end = s.find("{"), s.rfind("}")
    if start != -1 and end > start:
        return s[start : end + 1]
    return s


def parse_intent(raw: Any) -> IngestIntent | QueryIntent:
    """Validate a raw classifier response.

    Anything that is not a well-formed ingest/query object becomes a
    ``QueryIntent``, so malformed output can never trigger an ingestion.
    """
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data = json.loads(_clean_json_text(raw)) if isinstance(raw, str) else raw
        parsed = _intent_adapter.validate_python(data)
    except (ValueError, TypeError, PydanticValidationError) as exc:
        logger.warning("intent_fallback", extra={"reason": type(exc).__name__})
        return QueryIntent()
    if isinstance(parsed, QueryIntent):
        # Queries never carry note fields.
        return QueryIntent()
    return parsed


__all__ = ["Intent", "IngestIntent", "QueryIntent", "parse_intent"]
