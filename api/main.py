"""
FastAPI main application for the Bookshelf API.
"""

import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.config import config
from api.models import (
    BookFilter, BookPayload, FailResponse, HealthResponse, SuccessResponse
)
from api.store import BookStore, BookStoreError
from utilities.logger import setup_logging

# Setup logging
logger = structlog.get_logger(__name__)

INVALID_PAYLOAD_MESSAGE = "Gagal memproses permintaan. Payload tidak valid"
SERVER_ERROR_MESSAGE = "Terjadi kegagalan pada server"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug
    )
    logger.info("Starting Bookshelf API", host=config.host, port=config.port)

    # The store lives only as long as the process
    app.state.store = BookStore()

    yield

    # Shutdown
    logger.info("Shutting down Bookshelf API", books=app.state.store.count())


# Create FastAPI application
app = FastAPI(
    title=config.api_title,
    description="""
    An in-memory bookshelf API.

    ## Features

    * **Books**: Create, list, fetch, update and delete book entries
    * **Filtering**: Filter the listing by `name` (case-insensitive substring),
      `reading` and `finished` (`1` or `0`)

    Data is kept in memory and starts empty on every restart.
    """,
    version=config.api_version,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=config.cors_allow_credentials,
    allow_methods=config.cors_allow_methods,
    allow_headers=config.cors_allow_headers,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Bind request context to every log event and log the outcome."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request.headers.get("X-Request-ID") or uuid.uuid4().hex,
        method=request.method,
        path=request.url.path,
    )
    started = time.perf_counter()
    # Unhandled exceptions propagate to the 500 handler
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        logger.info(
            "Request completed",
            status_code=status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2)
        )


def get_store(request: Request) -> BookStore:
    """Dependency returning the application's book store."""
    return request.app.state.store


# Exception handlers
@app.exception_handler(BookStoreError)
async def book_store_exception_handler(request: Request, exc: BookStoreError):
    """Map store errors to ``fail`` responses."""
    return JSONResponse(
        status_code=exc.status_code,
        content=FailResponse(message=exc.message).model_dump(exclude_none=True)
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Reject unparseable bodies with 400 instead of FastAPI's 422.

    Field types are checked by the store, so this only covers bodies that are
    not a JSON object or whose ``name`` is not a string.
    """
    logger.warning("Invalid request payload", errors=str(exc.errors()))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=FailResponse(message=INVALID_PAYLOAD_MESSAGE).model_dump(exclude_none=True)
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=FailResponse(
            status="error",
            message=SERVER_ERROR_MESSAGE,
            detail=str(exc) if config.debug else None
        ).model_dump(exclude_none=True)
    )


# Health check endpoint
@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check(store: BookStore = Depends(get_store)):
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=config.api_version,
        books=store.count()
    )


# Books endpoints
@app.post("/books", status_code=status.HTTP_201_CREATED, tags=["Books"])
def add_book(payload: BookPayload, store: BookStore = Depends(get_store)):
    """Add a book to the shelf."""
    book_id = store.create(payload)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=SuccessResponse(
            message="Buku berhasil ditambahkan",
            data={"bookId": book_id}
        ).to_content()
    )


@app.get("/books", tags=["Books"])
def get_books(
    name: Optional[str] = None,
    reading: Optional[str] = None,
    finished: Optional[str] = None,
    store: BookStore = Depends(get_store)
):
    """
    List books as ``{id, name, publisher}`` summaries.

    - **name**: Case-insensitive substring of the book name
    - **reading**: `1` for books being read, `0` for the rest
    - **finished**: `1` for finished books, `0` for the rest

    Unrecognised ``reading``/``finished`` values are ignored.
    """
    book_filter = BookFilter.from_query(name=name, reading=reading, finished=finished)
    books = store.list(book_filter)
    return JSONResponse(
        content=SuccessResponse(
            data={"books": [book.model_dump(mode="json") for book in books]}
        ).to_content()
    )


@app.get("/books/{book_id}", tags=["Books"])
def get_book(book_id: str, store: BookStore = Depends(get_store)):
    """Get a single book by ID."""
    book = store.get(book_id)
    return JSONResponse(
        content=SuccessResponse(
            data={"book": book.model_dump(mode="json", by_alias=True)}
        ).to_content()
    )


@app.put("/books/{book_id}", tags=["Books"])
def edit_book(book_id: str, payload: BookPayload, store: BookStore = Depends(get_store)):
    """Replace every editable field of a book."""
    store.update(book_id, payload)
    return JSONResponse(
        content=SuccessResponse(message="Buku berhasil diperbarui").to_content()
    )


@app.delete("/books/{book_id}", tags=["Books"])
def delete_book(book_id: str, store: BookStore = Depends(get_store)):
    """Remove a book from the shelf."""
    store.delete(book_id)
    return JSONResponse(
        content=SuccessResponse(message="Buku berhasil dihapus").to_content()
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )
