# core/domain/entities/base_entity.py
from typing import Any, ClassVar, Iterable, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict

E = TypeVar("E", bound="MongoEntity")


class MongoEntity(BaseModel):
    """
    Base for documents read from / written to Mongo.

    `_id` is exposed as a string `id`; the ms/iso audit stamps are written by
    the repositories on upsert and are only informational here.
    """

    id: Optional[str] = None
    created_at: Optional[int] = None
    created_at_iso: Optional[str] = None
    updated_at: Optional[int] = None
    updated_at_iso: Optional[str] = None

    model_config = ConfigDict(extra="allow", use_enum_values=True)

    AUDIT_FIELDS: ClassVar[Tuple[str, ...]] = ("id", "created_at", "created_at_iso", "updated_at", "updated_at_iso")

    @classmethod
    def from_mongo(cls: Type[E], doc: Optional[dict[str, Any]]) -> Optional[E]:
        if not doc:
            return None
        data = dict(doc)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)

    @classmethod
    def from_mongo_many(cls: Type[E], docs: Iterable[Optional[dict[str, Any]]]) -> List[E]:
        return [e for e in (cls.from_mongo(d) for d in docs) if e is not None]

    def to_mongo(self) -> dict[str, Any]:
        data = self.model_dump(mode="python", exclude_none=True)
        if "id" in data:
            data["_id"] = data.pop("id")
        return data

    def payload(self) -> dict[str, Any]:
        """Domain fields only, without `_id` and audit stamps."""
        return self.model_dump(mode="python", exclude=set(self.AUDIT_FIELDS))
