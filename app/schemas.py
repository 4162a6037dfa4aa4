from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    status: str


class ClassificationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    label: str
    probability: float = Field(allow_inf_nan=False)
    class_id: int = Field(alias="classId")


class ErrorResponse(BaseModel):
    error: str
    details: str | None = None


@dataclass(frozen=True)
class UploadedImage:
    """An accepted upload, held fully in memory for one request."""

    content: bytes
    content_type: str
    filename: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class WorkerInvocationResult:
    returncode: int
    stdout: str
    stderr: str
