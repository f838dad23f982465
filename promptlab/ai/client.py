"""LiteLLM wrapper used by the tutor and the prompt exercises."""

import asyncio
import copy
import json
import logging
from typing import Any, TypeVar
from uuid import UUID

import litellm
from pydantic import BaseModel, ValidationError

from promptlab.ai.errors import AIRuntimeError, AISchemaValidationError, translate_provider_error
from promptlab.config.settings import Settings, get_settings


ModelT = TypeVar("ModelT", bound=BaseModel)

logger = logging.getLogger(__name__)

# Schema-constrained attempts before handing over to Instructor
STRUCTURED_ATTEMPTS = 2


class LLMClient:
    """Chat completions with optional structured (pydantic) output.

    Every provider failure leaves this class as an ``AIRuntimeError``
    subclass, so callers only need to handle the runtime taxonomy.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    async def complete(
        self,
        messages: list[dict[str, Any]],
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
        user_id: str | UUID | None = None,
        response_format: Any | None = None,
        model: str | None = None,
    ) -> Any:
        """Send one chat completion through LiteLLM and return the raw response."""
        settings = self._settings
        try:
            request: dict[str, Any] = {
                "model": model or settings.primary_llm_model,
                "messages": messages,
                "temperature": settings.ai_temperature_default if temperature is None else temperature,
                "max_tokens": settings.ai_max_tokens_default if max_tokens is None else max_tokens,
                "timeout": settings.ai_request_timeout,
            }
            if response_format is not None:
                request["response_format"] = response_format
            if user_id:
                # Provider-side abuse tracking; dropped by litellm where unsupported
                request["user"] = str(user_id)

            return await asyncio.wait_for(litellm.acompletion(**request), timeout=settings.ai_request_timeout)
        except Exception as e:
            logger.exception("LLM completion failed")
            raise translate_provider_error(e) from e

    async def get_completion(
        self,
        messages: list[dict[str, Any]],
        response_model: type[ModelT] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        format_json: bool = False,
        user_id: str | UUID | None = None,
        model: str | None = None,
    ) -> Any:
        """Return the reply text, a parsed JSON value, or a ``response_model`` instance."""
        if response_model is None:
            response = await self.complete(
                messages,
                temperature=temperature,
                max_tokens=max_tokens,
                user_id=user_id,
                response_format={"type": "json_object"} if format_json else None,
                model=model,
            )
            content = response.choices[0].message.content or ""
            return parse_json_content(content) if format_json else content

        try:
            model_name = model or self._settings.primary_llm_model
        except ValueError as e:
            logger.exception("No model configured for structured completion")
            raise translate_provider_error(e) from e

        try:
            return await self._structured(
                messages,
                response_model,
                temperature=temperature,
                max_tokens=max_tokens,
                user_id=user_id,
                model=model_name,
            )
        except AISchemaValidationError:
            logger.warning(
                "Schema-constrained output failed on %s; retrying with Instructor",
                model_name,
                exc_info=True,
            )
            return await self._structured_with_instructor(
                messages, response_model, temperature=temperature, max_tokens=max_tokens, model=model_name
            )

    async def _structured(
        self,
        messages: list[dict[str, Any]],
        response_model: type[ModelT],
        *,
        temperature: float | None,
        max_tokens: int | None,
        user_id: str | UUID | None,
        model: str,
    ) -> ModelT:
        response_format = json_schema_format(response_model)
        for attempt in range(1, STRUCTURED_ATTEMPTS + 1):
            response = await self.complete(
                messages,
                temperature=temperature,
                max_tokens=max_tokens,
                user_id=user_id,
                response_format=response_format,
                model=model,
            )
            parsed = extract_structured(response, response_model)
            if parsed is not None:
                return parsed
            logger.warning("Reply %d did not match %s", attempt, response_model.__name__)

        msg = f"Model never produced a valid {response_model.__name__}"
        raise AISchemaValidationError(msg)

    async def _structured_with_instructor(
        self,
        messages: list[dict[str, Any]],
        response_model: type[ModelT],
        *,
        temperature: float | None,
        max_tokens: int | None,
        model: str,
    ) -> ModelT:
        import instructor

        settings = self._settings
        client = instructor.from_litellm(litellm.acompletion)
        request: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "response_model": response_model,
            "temperature": settings.ai_temperature_default if temperature is None else temperature,
            "max_retries": 3,
            "timeout": settings.ai_request_timeout,
        }
        if max_tokens is not None:
            request["max_tokens"] = max_tokens

        try:
            return await asyncio.wait_for(
                client.chat.completions.create(**request),
                timeout=settings.ai_request_timeout,
            )
        except AIRuntimeError:
            raise
        except Exception as e:
            logger.exception("Instructor fallback failed")
            raise translate_provider_error(e) from e


def json_schema_format(response_model: type[BaseModel]) -> dict[str, Any]:
    """Build a strict ``json_schema`` response_format for ``response_model``."""
    schema = copy.deepcopy(response_model.model_json_schema())
    _make_strict(schema)
    return {"type": "json_schema", "json_schema": {"name": response_model.__name__, "schema": schema}}


def _make_strict(node: Any) -> None:
    # Strict mode wants every property required and no extras, at every level
    if not isinstance(node, dict):
        return
    children: list[Any] = list((node.get("$defs") or {}).values())
    properties = node.get("properties")
    if isinstance(properties, dict) and properties:
        node["required"] = list(properties)
        node.setdefault("additionalProperties", False)
        children.extend(properties.values())
    if isinstance(node.get("items"), dict):
        children.append(node["items"])
    for key in ("allOf", "anyOf", "oneOf"):
        children.extend(node.get(key) or [])
    for child in children:
        _make_strict(child)


def extract_structured(response: Any, response_model: type[ModelT]) -> ModelT | None:
    """Pull a ``response_model`` out of a LiteLLM response, or None when it does not validate."""
    choices = getattr(response, "choices", None)
    if not choices:
        return None
    message = getattr(choices[0], "message", None)
    for candidate in (getattr(message, "parsed", None), getattr(message, "content", None)):
        if isinstance(candidate, response_model):
            return candidate
        if isinstance(candidate, BaseModel):
            candidate = candidate.model_dump()
        elif isinstance(candidate, str):
            candidate = parse_json_content(candidate)
        if not isinstance(candidate, dict):
            continue
        try:
            return response_model.model_validate(candidate)
        except ValidationError:
            continue
    return None


def parse_json_content(content: str) -> dict[str, Any] | list[Any] | str:
    """Decode the JSON object embedded in a model reply; the text itself when there is none."""
    start, end = content.find("{"), content.rfind("}")
    candidate = content[start : end + 1] if start != -1 and end > start else content.strip()
    if not candidate.startswith(("{", "[")):
        return content
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        logger.warning("Model reply looked like JSON but did not parse")
        return content
