# catalog_api/core/errors.py
"""
Error taxonomy for catalog operations.

All client-facing errors are HTTPException subclasses so services can raise
them directly and FastAPI renders them as {"detail": ...}.
"""

from fastapi import HTTPException, status


class ValidationError(HTTPException):
    """Missing or invalid input (400)."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotFoundError(HTTPException):
    """Referenced product / category / variant does not exist (404)."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(HTTPException):
    """
    The write would break a referential or uniqueness rule.

    Defaults to 409; the category delete guard reports it as 400 so existing
    admin clients keep seeing a bad-request response.
    """

    def __init__(self, detail: str, status_code: int = status.HTTP_409_CONFLICT):
        super().__init__(status_code=status_code, detail=detail)


class TransactionFailure(HTTPException):
    """A transactional scope failed and was rolled back (500)."""

    def __init__(self, detail: str = "The operation could not be completed"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
        )


class TransientIOError(Exception):
    """
    A single gallery image could not be stored or recorded.

    Never surfaced to clients: the gallery batch logs it and moves on.
    """
