"""
In-memory book store.
Holds the bookshelf collection and implements create, list, get, update and
delete with validation and filtering.
"""

import secrets
import threading
from datetime import datetime, timezone
from typing import Callable, List, Optional

import structlog
from pydantic import ValidationError

from api.models import Book, BookFilter, BookPayload, BookSummary

logger = structlog.get_logger(__name__)

CREATE_PREFIX = "Gagal menambahkan buku"
UPDATE_PREFIX = "Gagal memperbarui buku"


class BookStoreError(Exception):
    """Base error raised by the book store."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BookValidationError(BookStoreError):
    """Client supplied an invalid book."""

    status_code = 400


class BookNotFoundError(BookStoreError):
    """Referenced book id does not exist."""

    status_code = 404


def generate_book_id() -> str:
    """Generate a random URL-safe book id (128 bits of entropy)."""
    return secrets.token_urlsafe(16)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def validate_payload(payload: BookPayload, prefix: str) -> BookPayload:
    """
    Check a create/update payload.

    The name is checked first, whatever the other fields hold.

    Returns:
        The payload with integer page counts and a boolean ``reading``

    Raises:
        BookValidationError: name missing, counts or ``reading`` of the wrong
            type, readPage above pageCount, or a negative page count.
    """
    if not payload.name:
        raise BookValidationError(f"{prefix}. Mohon isi nama buku")
    try:
        payload = payload.coerced()
    except ValidationError:
        raise BookValidationError(
            f"{prefix}. Tipe data pageCount, readPage atau reading tidak valid"
        )
    if payload.read_page > payload.page_count:
        raise BookValidationError(
            f"{prefix}. readPage tidak boleh lebih besar dari pageCount"
        )
    if payload.page_count < 0 or payload.read_page < 0:
        raise BookValidationError(
            f"{prefix}. pageCount dan readPage tidak boleh negatif"
        )
    return payload


class BookStore:
    """
    Insertion-ordered collection of books guarded by a single lock.

    Every operation holds the lock for its whole duration and validates
    before mutating, so callers never observe a half-applied change.
    """

    def __init__(
        self,
        id_factory: Callable[[], str] = generate_book_id,
        clock: Callable[[], datetime] = utc_now
    ):
        self._books: List[Book] = []
        self._lock = threading.Lock()
        self._id_factory = id_factory
        self._clock = clock

    def _index_of(self, book_id: str) -> Optional[int]:
        for index, book in enumerate(self._books):
            if book.id == book_id:
                return index
        return None

    def _new_id(self) -> str:
        book_id = self._id_factory()
        while self._index_of(book_id) is not None:
            book_id = self._id_factory()
        return book_id

    def create(self, payload: BookPayload) -> str:
        """
        Add a new book.

        Args:
            payload: Book fields supplied by the client

        Returns:
            The id assigned to the new book
        """
        with self._lock:
            try:
                payload = validate_payload(payload, CREATE_PREFIX)
            except BookValidationError as e:
                logger.warning("Book rejected", operation="create", reason=e.message)
                raise

            book = Book.from_payload(self._new_id(), payload, self._clock())
            self._books.append(book)

        logger.info("Book created", book_id=book.id, name=book.name)
        return book.id

    def list(self, book_filter: Optional[BookFilter] = None) -> List[BookSummary]:
        """Return summaries of matching books in insertion order."""
        book_filter = book_filter or BookFilter()
        with self._lock:
            return [book.to_summary() for book in self._books if book_filter.matches(book)]

    def get(self, book_id: str) -> Book:
        with self._lock:
            index = self._index_of(book_id)
            if index is None:
                raise BookNotFoundError("Buku tidak ditemukan")
            return self._books[index].model_copy(deep=True)

    def update(self, book_id: str, payload: BookPayload) -> Book:
        """
        Replace every mutable field of a book.

        The record keeps its id, its insertion timestamp and its position.

        Raises:
            BookNotFoundError: No book with ``book_id``
            BookValidationError: Payload failed validation
        """
        with self._lock:
            index = self._index_of(book_id)
            if index is None:
                logger.warning("Book not found", operation="update", book_id=book_id)
                raise BookNotFoundError(f"{UPDATE_PREFIX}. Id tidak ditemukan")

            try:
                payload = validate_payload(payload, UPDATE_PREFIX)
            except BookValidationError as e:
                logger.warning(
                    "Book rejected", operation="update", book_id=book_id, reason=e.message
                )
                raise

            book = self._books[index].replaced_by(payload, self._clock())
            self._books[index] = book

        logger.info("Book updated", book_id=book_id)
        return book

    def delete(self, book_id: str) -> None:
        with self._lock:
            index = self._index_of(book_id)
            if index is None:
                logger.warning("Book not found", operation="delete", book_id=book_id)
                raise BookNotFoundError("Buku gagal dihapus. Id tidak ditemukan")
            del self._books[index]

        logger.info("Book deleted", book_id=book_id)

    def count(self) -> int:
        with self._lock:
            return len(self._books)
