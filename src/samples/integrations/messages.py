"""Request, response, query and record shapes for the organization service.

These are plain value objects. `DataverseClient` translates them to Web API calls;
test doubles can inspect them directly.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Iterator


@dataclass(frozen=True, slots=True)
class RetrieveVersionRequest:
    pass


@dataclass(frozen=True, slots=True)
class RetrieveVersionResponse:
    version: str


@dataclass(frozen=True, slots=True)
class ImportSolutionRequest:
    customization_file: bytes
    overwrite_unmanaged_customizations: bool = False
    publish_workflows: bool = False
    import_job_id: uuid.UUID | None = None


@dataclass(frozen=True, slots=True)
class ImportSolutionResponse:
    import_job_id: uuid.UUID | None = None


def _odata_literal(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, uuid.UUID)):
        return str(value)
    escaped = str(value).replace("'", "''")
    return f"'{escaped}'"


@dataclass(frozen=True, slots=True)
class ConditionExpression:
    attribute: str
    value: Any
    operator: str = "eq"

    def to_odata(self) -> str:
        return f"{self.attribute} {self.operator} {_odata_literal(self.value)}"


@dataclass(slots=True)
class FilterExpression:
    conditions: list[ConditionExpression] = field(default_factory=list)
    filter_operator: str = "and"

    def add_condition(self, attribute: str, operator: str, value: Any) -> None:
        self.conditions.append(
            ConditionExpression(attribute=attribute, value=value, operator=operator)
        )

    def to_odata(self) -> str | None:
        if not self.conditions:
            return None
        return f" {self.filter_operator} ".join(c.to_odata() for c in self.conditions)


@dataclass(slots=True)
class QueryExpression:
    entity_name: str
    column_set: list[str] = field(default_factory=list)
    criteria: FilterExpression = field(default_factory=FilterExpression)

    def to_odata_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.column_set:
            params["$select"] = ",".join(self.column_set)
        flt = self.criteria.to_odata()
        if flt:
            params["$filter"] = flt
        return params


@dataclass(slots=True)
class QueryByAttribute:
    """Exact-match query: every attribute must equal the value at the same index."""

    entity_name: str
    attributes: list[str] = field(default_factory=list)
    values: list[Any] = field(default_factory=list)
    column_set: list[str] = field(default_factory=list)

    def add_attribute_value(self, attribute: str, value: Any) -> None:
        self.attributes.append(attribute)
        self.values.append(value)

    def to_odata_params(self) -> dict[str, str]:
        if len(self.attributes) != len(self.values):
            raise ValueError("QueryByAttribute attributes and values must have the same length")

        criteria = FilterExpression(
            conditions=[
                ConditionExpression(attribute=a, value=v)
                for a, v in zip(self.attributes, self.values)
            ]
        )
        return QueryExpression(
            entity_name=self.entity_name,
            column_set=list(self.column_set),
            criteria=criteria,
        ).to_odata_params()


@dataclass(slots=True)
class Entity:
    logical_name: str
    id: uuid.UUID | None = None
    attributes: dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, key: str) -> Any:
        return self.attributes[key]

    def __contains__(self, key: str) -> bool:
        return key in self.attributes

    def get(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)


@dataclass(slots=True)
class EntityCollection:
    entity_name: str
    entities: list[Entity] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entities)

    def __getitem__(self, index: int) -> Entity:
        return self.entities[index]

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.entities)
