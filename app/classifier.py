from abc import ABC, abstractmethod
from pathlib import Path
from typing import Sequence

from app.config import Settings
from app.invocation import invoke_worker
from app.responses import map_worker_result
from app.schemas import ClassificationResult


class BaseClassifier(ABC):
    """Contract for anything that can label an image stored on disk."""

    @abstractmethod
    async def classify(self, image_path: Path) -> ClassificationResult:
        """Classify the image at `image_path`.

        Raises:
            ClassificationServiceError: on any launch, execution or parse failure.
        """


class SubprocessClassifier(BaseClassifier):
    """Runs one external worker process per image."""

    def __init__(self, command: Sequence[str], model_dir: Path) -> None:
        self._command = list(command)
        self._model_dir = model_dir

    @property
    def command(self) -> list[str]:
        return list(self._command)

    @property
    def model_dir(self) -> Path:
        return self._model_dir

    async def classify(self, image_path: Path) -> ClassificationResult:
        result = await invoke_worker(self._command, image_path, self._model_dir)
        return map_worker_result(result)


def build_classifier(settings: Settings) -> BaseClassifier:
    return SubprocessClassifier(settings.resolved_worker_command(), settings.resolved_model_dir())
