from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, PrivateAttr, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateRequest(CamelModel):
    model_config = ConfigDict(extra="forbid")


class PatchRequest(CamelModel):
    """Partial update body; only the keys the client sent become changes, in the order sent."""

    model_config = ConfigDict(extra="forbid")

    non_nullable: ClassVar[frozenset[str]] = frozenset()

    _supplied: tuple[str, ...] = PrivateAttr(default=())

    @model_validator(mode="wrap")
    @classmethod
    def _remember_supplied_order(cls, data: Any, handler: Any) -> "PatchRequest":
        model = handler(data)
        if isinstance(data, dict):
            by_alias = {field.alias: name for name, field in cls.model_fields.items() if field.alias}
            model._supplied = tuple(by_alias.get(key, key) for key in data)
        return model

    @model_validator(mode="after")
    def _reject_null_for_required_columns(self) -> "PatchRequest":
        for name in sorted(self.model_fields_set & self.non_nullable):
            if getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        dumped = self.model_dump(by_alias=True, exclude_unset=True)
        fields = type(self).model_fields
        ordered = list(dict.fromkeys(fields[name].alias or name for name in self._supplied if name in self.model_fields_set))
        ordered += [key for key in dumped if key not in ordered]
        return {key: dumped[key] for key in ordered}


class DeletedOut(BaseModel):
    deleted: str
