from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel

class CustomModel(BaseModel):
    """
    Base model for every API schema in the project.

    Field names are snake_case in Python and camelCase on the wire; both
    spellings are accepted on input.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,

        # Allows building schemas straight from SQLAlchemy rows.
        from_attributes=True,

        extra="forbid",
    )

    @field_serializer('*', check_fields=False)
    def serialize_datetime(self, value, _info):
        """Render datetimes as ISO-8601 in UTC. Naive values are taken as UTC."""
        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            else:
                value = value.astimezone(timezone.utc)
            return value.isoformat()
        return value


def as_utc(value: datetime | None) -> datetime | None:
    """Normalise an incoming datetime to aware UTC (naive input is taken as UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DeleteResponse(CustomModel):
    success: bool = True
    id: int


class BulkItemResult(CustomModel):
    """Outcome of one item in a bulk request; ``error`` is set when ``success`` is false."""
    id: Optional[int] = None
    email: Optional[str] = None
    success: bool
    action: str
    error: Optional[str] = None


class BulkResponse(CustomModel):
    results: List[BulkItemResult]
    success: int
    failed: int

    @classmethod
    def from_results(cls, results: List[BulkItemResult], **extra):
        succeeded = sum(1 for r in results if r.success)
        return cls(results=results, success=succeeded, failed=len(results) - succeeded, **extra)
