"""Shared schema base classes for API payloads."""

from pydantic import AliasChoices, AliasGenerator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def _snake_or_camel(field_name: str) -> AliasChoices:
    return AliasChoices(field_name, to_camel(field_name))


class ORMModel(BaseModel):
    """Base model that reads SQLAlchemy objects and speaks camelCase on the wire."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=AliasGenerator(validation_alias=_snake_or_camel, serialization_alias=to_camel),
    )


class CamelModel(BaseModel):
    """Plain payload model accepting snake_case or camelCase keys."""

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=AliasGenerator(validation_alias=_snake_or_camel, serialization_alias=to_camel),
    )
