"""
Typed errors raised by the service layer.

The API layer maps each class to an HTTP status in ``main.py``; services never
build HTTP responses themselves.
"""


class BackofficeError(Exception):
    """Base class for user-facing errors."""

    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(BackofficeError):
    status_code = 404

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ConflictError(BackofficeError):
    status_code = 409


class AlreadyGroupedError(ConflictError):
    """Raised when a product is already a member of another product group."""

    def __init__(self, product_ids: list[int]):
        self.product_ids = product_ids
        super().__init__(
            f"Product(s) {product_ids} already belong to another group. "
            "Remove them from that group first."
        )


class ValidationFailed(BackofficeError):
    status_code = 422


# =============================================================================
# File-level errors (upload pipeline)
# =============================================================================

class FileFormatError(ValueError):
    """Raised when an uploaded file cannot be read as a spreadsheet."""


class ColumnMismatchError(FileFormatError):
    """Raised when a required column is absent from the uploaded file."""

    def __init__(self, missing: list[str], found: list[str], file_type: str):
        self.missing = missing
        self.found = found
        self.file_type = file_type
        super().__init__(
            f"[{file_type}] Missing required columns: {missing}. "
            f"Columns found in file: {found}"
        )
