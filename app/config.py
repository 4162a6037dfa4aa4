import logging
import os
import sys
import tempfile
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_REPO_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_MODEL_DIR = _REPO_ROOT / "model"
DEFAULT_PYTHON_EXECUTABLE = "python3"
MAX_UPLOAD_BYTES = 10 * 1024 * 1024


def _venv_python(root: Path) -> Path:
    if sys.platform == "win32":
        return root / "venv" / "Scripts" / "python.exe"
    return root / "venv" / "bin" / "python"


def resolve_python_executable(explicit: str | None = None, root: Path = _REPO_ROOT) -> str:
    """Pick the interpreter that runs the worker.

    An explicit setting wins, then a `venv` next to the repository, then
    the system `python3`.
    """
    if explicit:
        return explicit
    venv_python = _venv_python(root)
    if venv_python.exists():
        return str(venv_python)
    return DEFAULT_PYTHON_EXECUTABLE


class Settings(BaseSettings):
    """Service configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", protected_namespaces=())

    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    python_executable: str | None = None
    worker_module: str = "app.worker"
    worker_command: list[str] | None = None

    model_dir: Path = DEFAULT_MODEL_DIR
    upload_dir: Path = Path(tempfile.gettempdir())
    max_upload_bytes: int = MAX_UPLOAD_BYTES

    @field_validator("max_upload_bytes")
    @classmethod
    def _positive_limit(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("max_upload_bytes must be positive")
        return value

    @field_validator("worker_command")
    @classmethod
    def _non_empty_command(cls, value: list[str] | None) -> list[str] | None:
        if value is not None and not value:
            raise ValueError("worker_command must name an executable")
        return value

    def resolved_worker_command(self) -> list[str]:
        """Command prefix; the artifact path and model dir are appended to it."""
        if self.worker_command:
            return list(self.worker_command)
        return [resolve_python_executable(self.python_executable), "-m", self.worker_module]

    def resolved_model_dir(self) -> Path:
        return Path(os.path.abspath(self.model_dir))


@lru_cache
def get_settings() -> Settings:
    return Settings()
