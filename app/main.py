import logging

import uvicorn
from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError

from app.artifacts import ArtifactStore
from app.classifier import BaseClassifier, build_classifier
from app.config import Settings, get_settings
from app.exceptions import ClassificationServiceError, InvalidRequest, MissingInput
from app.responses import error_envelope
from app.schemas import ClassificationResult, ErrorResponse, HealthResponse
from app.uploads import accept_upload

logging.basicConfig(level=get_settings().log_level.upper())
logger = logging.getLogger(__name__)

app = FastAPI(title="Image Classification API", version="1.0.0")

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    413: {"model": ErrorResponse},
    415: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def get_artifact_store(settings: Settings = Depends(get_settings)) -> ArtifactStore:
    return ArtifactStore(settings.upload_dir)


def get_classifier(settings: Settings = Depends(get_settings)) -> BaseClassifier:
    return build_classifier(settings)


@app.on_event("startup")
def startup():
    settings = get_settings()
    command = settings.resolved_worker_command()
    logger.info("Worker command: %s", " ".join(command))
    logger.info("Model directory: %s", settings.resolved_model_dir())
    logger.info("Artifacts written to %s", settings.upload_dir)
    if not settings.resolved_model_dir().is_dir():
        logger.warning("Model directory %s does not exist", settings.resolved_model_dir())


@app.exception_handler(ClassificationServiceError)
async def classification_error_handler(request: Request, exc: ClassificationServiceError):
    return error_envelope(exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # a text value in the `image` field is not a file upload
    if any(tuple(err.get("loc", ()))[:2] == ("body", "image") for err in exc.errors()):
        return error_envelope(MissingInput())
    messages = "; ".join(str(err.get("msg", "")) for err in exc.errors())
    return error_envelope(InvalidRequest(messages or None))


@app.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


@app.post("/classify", response_model=ClassificationResult, responses=_ERROR_RESPONSES)
async def classify_endpoint(
    image: UploadFile | None = File(None),
    settings: Settings = Depends(get_settings),
    store: ArtifactStore = Depends(get_artifact_store),
    classifier: BaseClassifier = Depends(get_classifier),
):
    upload = await accept_upload(image, settings.max_upload_bytes)
    async with store.artifact(upload.content, upload.content_type) as path:
        return await classifier.classify(path)


def run() -> None:
    settings = get_settings()
    logger.info("Server is running on http://%s:%s", settings.host, settings.port)
    logger.info("POST an image to http://%s:%s/classify", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
