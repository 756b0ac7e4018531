# companylens/core/exceptions.py
from typing import List, Optional


class CompanyLensError(Exception):
    """Base class for all custom exceptions in the CompanyLens project."""
    pass


# --- Configuration Errors ---
class ConfigurationError(CompanyLensError):
    """Error related to application configuration."""
    pass


# --- Database Errors ---
class DatabaseError(CompanyLensError):
    """Error related to database operations."""
    pass


class DatabaseConnectionError(DatabaseError):
    """Error establishing a connection to the database."""
    pass


class DatabaseQueryError(DatabaseError):
    """Error during the execution of a database query."""
    pass


class SearchStorageError(DatabaseError):
    """
    The ranked or count search query failed at the storage engine.

    The message is safe to show to callers; driver detail is only logged.
    """

    def __init__(self, message: str = "Search query failed at the storage engine"):
        super().__init__(message)


# --- Search Request Errors ---
class SearchValidationError(CompanyLensError):
    """Malformed or oversized search input, rejected before any I/O."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = list(errors or [])
        full_message = f"{message}"
        if self.errors:
            full_message += " | " + "; ".join(self.errors)
        super().__init__(full_message)


class SearchCancelledError(CompanyLensError):
    """The caller aborted the search request. Not a failure."""
    pass


# --- Embedding Errors ---
class EmbeddingUnavailableError(CompanyLensError):
    """The embedding call failed, timed out or returned an unusable vector."""

    def __init__(self,
                 message: str,
                 url: str | None = None,
                 status_code: int | None = None):
        self.url = url
        self.status_code = status_code
        full_message = f"{message}"
        if url:
            full_message += f" | URL: {url}"
        if status_code:
            full_message += f" | Status Code: {status_code}"
        super().__init__(full_message)
