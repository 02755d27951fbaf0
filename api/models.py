"""
API models and schemas for the Bookshelf API.

Python attributes are snake_case; the wire format keeps the camelCase field
names clients already rely on (``pageCount``, ``insertedAt``, ...) through
pydantic aliases.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, TypeAdapter, field_serializer


FLAG_VALUES = {"1": True, "0": False}

INT_ADAPTER = TypeAdapter(int)
BOOL_ADAPTER = TypeAdapter(bool)


def parse_flag(value: Optional[str]) -> Optional[bool]:
    """
    Parse a ``reading``/``finished`` query parameter.

    Only ``"1"`` and ``"0"`` are recognised. Anything else, including a
    missing parameter, yields ``None`` so no filter is applied.
    """
    if value is None:
        return None
    return FLAG_VALUES.get(value.strip())


def format_timestamp(value: datetime) -> str:
    """Render a UTC datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class BookPayload(BaseModel):
    """Request body for creating or replacing a book."""
    name: Optional[str] = Field(None, description="Book title")
    year: Any = Field(None, description="Publication year")
    author: Any = Field(None, description="Book author")
    summary: Any = Field(None, description="Short summary")
    publisher: Any = Field(None, description="Publisher")
    # Typed loosely so a missing name is reported before any type error
    page_count: Any = Field(0, alias="pageCount", description="Total pages")
    read_page: Any = Field(0, alias="readPage", description="Pages read so far")
    reading: Any = Field(False, description="Whether the book is being read")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
        "json_schema_extra": {
            "example": {
                "name": "Buku A",
                "year": 2010,
                "author": "John Doe",
                "summary": "Lorem ipsum dolor sit amet",
                "publisher": "Dicoding Indonesia",
                "pageCount": 100,
                "readPage": 25,
                "reading": False
            }
        }
    }

    def coerced(self) -> "BookPayload":
        """
        Return a copy with integer page counts and a boolean ``reading``.

        Raises:
            pydantic.ValidationError: A value cannot be converted
        """
        return self.model_copy(update={
            "page_count": INT_ADAPTER.validate_python(self.page_count),
            "read_page": INT_ADAPTER.validate_python(self.read_page),
            "reading": BOOL_ADAPTER.validate_python(self.reading),
        })


class Book(BaseModel):
    """A stored book record."""
    id: str = Field(..., description="Unique book identifier")
    name: str = Field(..., description="Book title")
    year: Any = None
    author: Any = None
    summary: Any = None
    publisher: Any = None
    page_count: int = Field(..., alias="pageCount")
    read_page: int = Field(..., alias="readPage")
    finished: bool = Field(..., description="True when every page has been read")
    reading: bool = False
    inserted_at: datetime = Field(..., alias="insertedAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    model_config = {"populate_by_name": True}

    @field_serializer("inserted_at", "updated_at")
    def serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)

    @classmethod
    def from_payload(cls, book_id: str, payload: BookPayload, now: datetime) -> "Book":
        """Build a brand new record; both timestamps are ``now``."""
        return cls(
            id=book_id,
            name=payload.name,
            year=payload.year,
            author=payload.author,
            summary=payload.summary,
            publisher=payload.publisher,
            page_count=payload.page_count,
            read_page=payload.read_page,
            finished=payload.read_page == payload.page_count,
            reading=payload.reading,
            inserted_at=now,
            updated_at=now,
        )

    def replaced_by(self, payload: BookPayload, now: datetime) -> "Book":
        """
        Build the full replacement for this record.

        Only ``id`` and ``inserted_at`` are carried over; every other field
        comes from ``payload``.
        """
        return Book(
            id=self.id,
            name=payload.name,
            year=payload.year,
            author=payload.author,
            summary=payload.summary,
            publisher=payload.publisher,
            page_count=payload.page_count,
            read_page=payload.read_page,
            finished=payload.read_page == payload.page_count,
            reading=payload.reading,
            inserted_at=self.inserted_at,
            updated_at=max(now, self.updated_at),
        )

    def to_summary(self) -> "BookSummary":
        return BookSummary(id=self.id, name=self.name, publisher=self.publisher)


class BookSummary(BaseModel):
    """Projection returned by the book listing."""
    id: str
    name: str
    publisher: Any = None


class BookFilter(BaseModel):
    """Filters for book listing. ``None`` means unconstrained."""
    name: Optional[str] = Field(None, description="Case-insensitive substring of the name")
    reading: Optional[bool] = Field(None, description="Filter by reading flag")
    finished: Optional[bool] = Field(None, description="Filter by finished flag")

    @classmethod
    def from_query(
        cls,
        name: Optional[str] = None,
        reading: Optional[str] = None,
        finished: Optional[str] = None
    ) -> "BookFilter":
        return cls(
            name=name or None,
            reading=parse_flag(reading),
            finished=parse_flag(finished),
        )

    def matches(self, book: Book) -> bool:
        if self.name is not None and self.name.casefold() not in book.name.casefold():
            return False
        if self.reading is not None and book.reading != self.reading:
            return False
        if self.finished is not None and book.finished != self.finished:
            return False
        return True


class SuccessResponse(BaseModel):
    """Envelope for successful responses."""
    status: str = "success"
    message: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    def to_content(self) -> Dict[str, Any]:
        """Render the envelope, leaving out the parts that were not supplied."""
        content: Dict[str, Any] = {"status": self.status}
        if self.message is not None:
            content["message"] = self.message
        if self.data is not None:
            content["data"] = self.data
        return content


class FailResponse(BaseModel):
    """Envelope for client errors (``fail``) and server errors (``error``)."""
    status: str = "fail"
    message: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    books: int = Field(..., description="Number of stored books")
