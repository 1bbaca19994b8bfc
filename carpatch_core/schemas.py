from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, Field, field_validator

from .errors import FailureKind, PatchError


TBaseSchema = TypeVar("TBaseSchema", bound="BaseSchema")


class BaseSchema(BaseModel):
    def to_json(self) -> str:
        return self.model_dump_json()

    def to_dict(self) -> dict[str, object]:
        return self.model_dump(mode="json")

    @classmethod
    def from_json(cls: type[TBaseSchema], data: str) -> TBaseSchema:
        return cls.model_validate_json(data)

    @classmethod
    def from_dict(cls: type[TBaseSchema], data: Mapping[str, object]) -> TBaseSchema:
        return cls.model_validate(data)


class PatchSpecification(BaseSchema):
    patches: list[str] = Field(default_factory=list)
    randomize_order: bool = False
    add_fake_patches: bool = False
    preserve_original: bool = True

    @field_validator("patches")
    @classmethod
    def patches_not_blank(cls, value: list[str]) -> list[str]:
        for index, patch in enumerate(value):
            if not patch.strip():
                raise ValueError(f"patch #{index} is blank")
        return value

    @classmethod
    def coerce(cls, spec: "PatchSpecification | Mapping[str, object]") -> "PatchSpecification":
        """Accept either a specification or its plain-dict form."""
        if isinstance(spec, cls):
            return spec
        return cls.from_dict(spec)


class ErrorRecord(BaseSchema):
    kind: FailureKind
    message: str

    @classmethod
    def from_exception(cls, exc: PatchError) -> "ErrorRecord":
        return cls(kind=exc.kind, message=exc.message)

    def __str__(self) -> str:
        return self.message


class PatchOutcome(BaseSchema):
    identity: str
    original_text: str | None = None
    patched_text: str = ""
    patches_applied: int = Field(default=0, ge=0)
    execution_result: Any = None
    output: str = ""
    result_is_repr: bool = False
    errors: list[ErrorRecord] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def error_messages(self) -> list[str]:
        return [error.message for error in self.errors]

    def has_error(self, kind: FailureKind) -> bool:
        return any(error.kind == kind for error in self.errors)
