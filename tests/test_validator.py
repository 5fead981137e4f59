from __future__ import annotations

from typing import Any, Dict

import pytest

from app.services.ai.errors import AiValidationError
from app.services.ai.validator import validate_ai_output


def valid_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "summary": "Touches session handling and has no test changes.",
        "review_focus": [
            "Session expiry logic in login.ts",
            "Error paths in token refresh",
            "Cookie flags on the new endpoint",
        ],
        "test_suggestions": [
            "Add a test for expired sessions",
            "Cover refresh failure handling",
            "Run the auth integration suite",
        ],
        "rollback_risk": "MED",
        "confidence": 0.7,
        "warnings": ["Diff for one file was truncated"],
    }
    payload.update(overrides)
    return payload


def test_valid_output_is_accepted() -> None:
    output = validate_ai_output(valid_payload())
    assert output.rollback_risk == "MED"
    assert output.confidence == 0.7
    assert len(output.review_focus) == 3


def test_unknown_keys_are_dropped() -> None:
    output = validate_ai_output(valid_payload(extra_field="ignored"))
    assert "extra_field" not in output.model_dump()


def test_warnings_are_optional() -> None:
    payload = valid_payload()
    del payload["warnings"]
    assert validate_ai_output(payload).warnings is None


@pytest.mark.parametrize("confidence", [-0.1, 1.01, "0.5", True])
def test_bad_confidence_is_rejected(confidence: Any) -> None:
    with pytest.raises(AiValidationError):
        validate_ai_output(valid_payload(confidence=confidence))


@pytest.mark.parametrize(
    "field, items",
    [
        ("review_focus", ["only one item here", "second item here"]),
        ("review_focus", [f"review item {i}" for i in range(6)]),
        ("test_suggestions", ["a test to run", "another test"]),
        ("test_suggestions", [f"suggested test {i}" for i in range(7)]),
        ("review_focus", ["ok item one", "ok item two", "tiny"]),
    ],
)
def test_array_bounds_are_enforced(field: str, items: list) -> None:
    with pytest.raises(AiValidationError):
        validate_ai_output(valid_payload(**{field: items}))


@pytest.mark.parametrize("summary", ["too short", "x" * 501])
def test_summary_length_is_enforced(summary: str) -> None:
    with pytest.raises(AiValidationError):
        validate_ai_output(valid_payload(summary=summary))


def test_unknown_rollback_risk_is_rejected() -> None:
    with pytest.raises(AiValidationError):
        validate_ai_output(valid_payload(rollback_risk="medium"))


def test_secret_in_otherwise_valid_output_is_rejected() -> None:
    payload = valid_payload(
        warnings=["Found token=abcdefghijklmnopqrstuvwxyz123 in config"],
    )
    with pytest.raises(AiValidationError, match="secret"):
        validate_ai_output(payload)


def test_non_object_is_rejected() -> None:
    with pytest.raises(AiValidationError):
        validate_ai_output(["not", "an", "object"])
