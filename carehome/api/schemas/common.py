"""Shared base for partial-update request bodies."""

from typing import Any, ClassVar

from pydantic import BaseModel, ValidationInfo, field_validator


class PartialUpdate(BaseModel):
    """Body of an update where omitted fields are left unchanged.

    An explicit ``null`` is only accepted for fields listed in
    ``nullable_fields``; the others map to NOT NULL columns.
    """

    nullable_fields: ClassVar[frozenset[str]] = frozenset()

    @field_validator("*")
    @classmethod
    def reject_null(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None and info.field_name not in cls.nullable_fields:
            raise ValueError("may be omitted but cannot be null")
        return value
