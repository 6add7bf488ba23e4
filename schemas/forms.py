# schemas/forms.py
from __future__ import annotations

import math
from typing import Annotated, List, Literal, Optional, Union

from pydantic import AnyHttpUrl, BaseModel, Field, TypeAdapter, ValidationError

_URL = TypeAdapter(AnyHttpUrl)


class _FieldBase(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    label: str = ""
    required: bool = False
    max_length: Optional[int] = Field(default=None, ge=1)
    placeholder: Optional[str] = None
    help_text: Optional[str] = None

    def check(self, value: str) -> Optional[str]:
        """Return an error message, or None when `value` is acceptable."""
        if not value.strip():
            return "This field is required." if self.required else None
        if self.max_length is not None and len(value) > self.max_length:
            return f"Must be at most {self.max_length} characters."
        return self._check_type(value.strip())

    def _check_type(self, value: str) -> Optional[str]:
        return None


class TextField(_FieldBase):
    type: Literal["text"] = "text"


class TextAreaField(_FieldBase):
    type: Literal["textarea"] = "textarea"


class SelectField(_FieldBase):
    type: Literal["select"] = "select"
    options: List[str] = Field(min_length=1)

    def _check_type(self, value: str) -> Optional[str]:
        if value not in self.options:
            return "Choose one of the listed options."
        return None


class UrlField(_FieldBase):
    type: Literal["url"] = "url"

    def _check_type(self, value: str) -> Optional[str]:
        try:
            _URL.validate_python(value)
        except ValidationError:
            return "Enter a valid http(s) URL."
        return None


class NumberField(_FieldBase):
    type: Literal["number"] = "number"

    def _check_type(self, value: str) -> Optional[str]:
        try:
            n = float(value)
        except ValueError:
            return "Enter a number."
        if not math.isfinite(n):
            return "Enter a number."
        return None


FormField = Annotated[
    Union[TextField, TextAreaField, SelectField, UrlField, NumberField],
    Field(discriminator="type"),
]

FORM_SCHEMA = TypeAdapter(List[FormField])


class FormResponse(BaseModel):
    field_id: str
    value: str = ""
    field_label: Optional[str] = None
