"""
Base schemas with common functionality.
"""
from typing import Type, TypeVar, Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar('T', bound='BaseSchema')

class BaseSchema(BaseModel):
    """Base schema with common functionality for all schemas"""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True
    )

    @classmethod
    def from_orm_model(cls: Type[T], orm_model: Any) -> T:
        """Create a schema instance from an ORM model"""
        return cls.model_validate(orm_model)


class CamelSchema(BaseSchema):
    """
    Base for payloads shared with the mobile client and stored as JSON
    documents, which use camelCase keys (firstName, postalCode, txRef).
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")
