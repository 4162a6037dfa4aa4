import json
import logging

from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.exceptions import ClassificationServiceError, ResultParseError, WorkerExecutionError
from app.schemas import ClassificationResult, ErrorResponse, WorkerInvocationResult

logger = logging.getLogger(__name__)


def _reject_constant(token: str) -> float:
    raise ValueError(f"{token} is not valid JSON")


def map_worker_result(result: WorkerInvocationResult) -> ClassificationResult:
    """Turn a finished worker run into a classification or a terminal error.

    A non-zero exit reports the worker's stderr and ignores stdout. A zero
    exit must leave a JSON object with `label`, `probability` and `classId`
    on stdout.
    """
    if result.returncode != 0:
        logger.error("Worker exited with code %s: %s", result.returncode, result.stderr)
        raise WorkerExecutionError(result.stderr)
    try:
        payload = json.loads(result.stdout, parse_constant=_reject_constant)
        return ClassificationResult.model_validate(payload)
    except (ValueError, ValidationError) as e:
        logger.error("Failed to parse worker output %r: %s", result.stdout, e)
        raise ResultParseError(result.stdout) from e


def error_envelope(exc: ClassificationServiceError) -> JSONResponse:
    body = ErrorResponse(error=exc.error, details=exc.details)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(exclude_none=True),
    )
