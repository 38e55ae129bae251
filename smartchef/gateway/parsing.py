"""Lenient parsing of model output into validated schema objects.

Models sometimes wrap JSON in prose or Markdown fences. Parsing tries, in order:
1. Direct json.loads() on the full text
2. A fenced ```json block
3. The outermost {...} object found in the text

The parsed object is then validated against the target Pydantic model. Output
that cannot be parsed or does not conform is a GenerationFailure; it is never
passed through.
"""

import json
import re
from typing import Any, Type, TypeVar

from pydantic import BaseModel, ValidationError

from smartchef.utils.errors import GenerationFailure, ValidationFailure, safe_execute_sync
from smartchef.utils.logger import logger


ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCE_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def extract_json_object(text: str) -> Any:
    """Return the first JSON value recoverable from ``text``, or None."""

    def _parse_direct():
        return json.loads(text)

    def _parse_fenced():
        match = _FENCE_RE.search(text)
        return json.loads(match.group(1)) if match else None

    def _parse_embedded():
        match = _OBJECT_RE.search(text)
        return json.loads(match.group()) if match else None

    for name, strategy in (
        ("Direct JSON parse", _parse_direct),
        ("Fenced JSON extraction", _parse_fenced),
        ("Embedded JSON extraction", _parse_embedded),
    ):
        parsed = safe_execute_sync(strategy, name, log_level="debug", default_return=None)
        if parsed is not None:
            return parsed
    return None


def _describe_errors(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "response"
    return f"{location}: {first.get('msg', 'invalid value')}"


def validate_output(capability: str, content: Any, schema: Type[ModelT]) -> ModelT:
    """Coerce provider output into ``schema`` or raise GenerationFailure.

    Args:
        capability: Capability name used in the failure message.
        content: Already-parsed model instance, a dict, or raw response text.
        schema: Target Pydantic model.

    Returns:
        Validated schema instance.

    Raises:
        GenerationFailure: If the content is empty, unparseable or non-conforming.
    """
    if isinstance(content, schema):
        return content
    if isinstance(content, BaseModel):
        content = content.model_dump()
    if isinstance(content, str):
        if not content.strip():
            raise GenerationFailure(capability, "model returned an empty response")
        parsed = extract_json_object(content)
        if parsed is None:
            logger.warning(f"{capability}: could not parse JSON from model response")
            raise GenerationFailure(capability, "model response was not valid JSON")
        content = parsed
    if not isinstance(content, dict):
        raise GenerationFailure(capability, "model response did not match the expected schema")

    try:
        return schema.model_validate(content)
    except ValidationError as e:
        logger.warning(f"{capability}: non-conforming model output ({_describe_errors(e)})")
        raise GenerationFailure(capability, f"non-conforming model output ({_describe_errors(e)})") from e


def validate_input(schema: Type[ModelT], data: Any) -> ModelT:
    """Validate caller input before any network call.

    Raises:
        ValidationFailure: Naming the first offending field.
    """
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or schema.__name__
        raise ValidationFailure(field, first.get("msg", "invalid value")) from e
