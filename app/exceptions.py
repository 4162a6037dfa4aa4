class ClassificationServiceError(Exception):
    """Base exception for every failure surfaced to HTTP clients."""

    status_code: int = 500
    error: str = "Internal server error"

    def __init__(self, details: str | None = None) -> None:
        super().__init__(details or self.error)
        self.details = details


class MissingInput(ClassificationServiceError):
    """Raised when the request carries no `image` file field."""

    status_code = 400
    error = "No image file provided"


class PayloadTooLarge(ClassificationServiceError):
    """Raised when the upload exceeds the configured size cap."""

    status_code = 413
    error = "Image exceeds the upload size limit"


class UnsupportedMediaType(ClassificationServiceError):
    """Raised when the declared MIME type is not an image type."""

    status_code = 415
    error = "Only image files are allowed"


class StorageError(ClassificationServiceError):
    """Raised when the uploaded image cannot be written to disk."""

    error = "Failed to store uploaded image"


class WorkerLaunchError(ClassificationServiceError):
    """Raised when the worker process cannot be started."""

    error = "Failed to start classifier"


class WorkerExecutionError(ClassificationServiceError):
    """Raised when the worker exits non-zero or its output cannot be read."""

    error = "Classification failed"


class ResultParseError(ClassificationServiceError):
    """Raised when the worker succeeds but its output is not a valid result."""

    error = "Failed to parse classification result"


class InvalidRequest(ClassificationServiceError):
    """Raised when a request fails validation for a reason other than the image field."""

    status_code = 400
    error = "Invalid request"
