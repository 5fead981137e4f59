"""
Validation of model output.

A response is accepted only as a whole: it must be a JSON object matching
`AiOutput`, and its serialized form must not contain anything that looks
like a secret.
"""

import json
from typing import Any

from pydantic import ValidationError

from app.services.ai.errors import AiValidationError
from app.services.ai.redaction import contains_secrets
from app.services.ai.schemas import AiOutput


def validate_ai_output(payload: Any) -> AiOutput:
    """
    Validate a parsed model response.

    Raises:
        AiValidationError: If the payload is not an object, fails the schema,
            or contains secret-shaped substrings.
    """
    if not isinstance(payload, dict):
        raise AiValidationError(
            f"Expected a JSON object, got {type(payload).__name__}"
        )

    try:
        output = AiOutput.model_validate(payload)
    except ValidationError as exc:
        raise AiValidationError(
            f"Schema validation failed: {exc.error_count()} error(s): {exc.errors()[0]['msg']}"
        ) from exc

    if contains_secrets(json.dumps(payload)):
        raise AiValidationError("Output contains suspicious secret patterns")

    return output
