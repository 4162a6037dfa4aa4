import json

import pytest
from pydantic import ValidationError

from app.exceptions import ResultParseError, StorageError, WorkerExecutionError
from app.responses import error_envelope, map_worker_result
from app.schemas import ClassificationResult, WorkerInvocationResult


def _result(returncode: int = 0, stdout: str = "", stderr: str = "") -> WorkerInvocationResult:
    return WorkerInvocationResult(returncode=returncode, stdout=stdout, stderr=stderr)


class TestSuccessfulExit:
    def test_parses_classification(self) -> None:
        result = map_worker_result(_result(stdout='{"label": "cat", "probability": 0.97, "classId": 3}'))

        assert result.label == "cat"
        assert result.probability == 0.97
        assert result.class_id == 3

    def test_serializes_with_class_id_alias(self) -> None:
        result = map_worker_result(_result(stdout='{"label": "cat", "probability": 0.97, "classId": 3}\n'))

        assert result.model_dump(by_alias=True) == {"label": "cat", "probability": 0.97, "classId": 3}

    def test_ignores_extra_fields(self) -> None:
        stdout = json.dumps({"label": "cat", "probability": 0.5, "classId": 1, "logits": [1, 2]})

        result = map_worker_result(_result(stdout=stdout))

        assert result.model_dump(by_alias=True) == {"label": "cat", "probability": 0.5, "classId": 1}

    def test_non_json_output_raises_parse_error(self) -> None:
        with pytest.raises(ResultParseError) as exc_info:
            map_worker_result(_result(stdout="oops"))

        assert exc_info.value.details == "oops"

    def test_missing_field_raises_parse_error(self) -> None:
        with pytest.raises(ResultParseError):
            map_worker_result(_result(stdout='{"label": "cat", "probability": 0.97}'))

    def test_json_array_raises_parse_error(self) -> None:
        with pytest.raises(ResultParseError):
            map_worker_result(_result(stdout="[1, 2, 3]"))

    @pytest.mark.parametrize("token", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_probability_raises_parse_error(self, token: str) -> None:
        stdout = f'{{"label": "cat", "probability": {token}, "classId": 3}}'

        with pytest.raises(ResultParseError) as exc_info:
            map_worker_result(_result(stdout=stdout))

        assert exc_info.value.details == stdout

    def test_model_rejects_non_finite_probability(self) -> None:
        with pytest.raises(ValidationError):
            ClassificationResult.model_validate({"label": "cat", "probability": float("nan"), "classId": 3})


class TestNonZeroExit:
    def test_raises_execution_error_with_stderr(self) -> None:
        with pytest.raises(WorkerExecutionError) as exc_info:
            map_worker_result(_result(returncode=1, stdout="ignored", stderr="model not found"))

        assert exc_info.value.details == "model not found"

    def test_valid_stdout_is_ignored(self) -> None:
        stdout = '{"label": "cat", "probability": 0.97, "classId": 3}'

        with pytest.raises(WorkerExecutionError):
            map_worker_result(_result(returncode=2, stdout=stdout))


class TestErrorEnvelope:
    def test_includes_details(self) -> None:
        response = error_envelope(WorkerExecutionError("model not found"))

        assert response.status_code == 500
        assert json.loads(response.body) == {"error": "Classification failed", "details": "model not found"}

    def test_omits_missing_details(self) -> None:
        response = error_envelope(StorageError())

        assert json.loads(response.body) == {"error": "Failed to store uploaded image"}
