import io
import sys
import textwrap
from pathlib import Path
from typing import Callable

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from app.config import Settings, get_settings
from app.main import app


@pytest.fixture()
def png_bytes() -> bytes:
    """A small valid PNG image."""
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), color=(200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture()
def upload_dir(tmp_path: Path) -> Path:
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture()
def model_dir(tmp_path: Path) -> Path:
    path = tmp_path / "model"
    path.mkdir()
    return path


@pytest.fixture()
def write_worker(tmp_path: Path) -> Callable[[str], list[str]]:
    """Write a stub worker script and return the command that runs it."""

    def _write(source: str, name: str = "stub_worker.py") -> list[str]:
        script = tmp_path / name
        script.write_text(textwrap.dedent(source), encoding="utf-8")
        return [sys.executable, str(script)]

    return _write


@pytest.fixture()
def make_client(upload_dir: Path, model_dir: Path):
    """Build a TestClient whose settings point at the given worker command."""

    def _make(command: list[str], **overrides: object) -> TestClient:
        params: dict[str, object] = {
            "worker_command": command,
            "model_dir": model_dir,
            "upload_dir": upload_dir,
        }
        params.update(overrides)
        settings = Settings(**params)
        app.dependency_overrides[get_settings] = lambda: settings
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()
