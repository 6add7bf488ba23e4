"""Contest entry validation against a stored form schema."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from schemas.forms import FORM_SCHEMA, FormResponse


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


def validate_responses(
    form_schema: Sequence[Dict[str, Any]], responses: Sequence[FormResponse]
) -> tuple[List[Dict[str, Any]], Optional[FieldError]]:
    """
    Check `responses` against the schema. Returns the cleaned responses in
    schema order (labels attached, missing optional fields as "") and the
    first error found, if any.
    """
    fields = FORM_SCHEMA.validate_python(list(form_schema))
    known = {f.id for f in fields}

    by_id: Dict[str, str] = {}
    for r in responses:
        if r.field_id not in known:
            return [], FieldError(r.field_id, "Unknown field.")
        if r.field_id in by_id:
            return [], FieldError(r.field_id, "Field answered more than once.")
        by_id[r.field_id] = r.value

    cleaned: List[Dict[str, Any]] = []
    for f in fields:
        value = by_id.get(f.id, "")
        msg = f.check(value)
        if msg:
            return [], FieldError(f.id, msg)
        cleaned.append({"field_id": f.id, "field_label": f.label or None, "value": value.strip()})
    return cleaned, None
