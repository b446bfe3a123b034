"""JSON serializer backed by pydantic."""

import json
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, TypeAdapter, ValidationError

from spotapi.http.constants import JSON_CONTENT_TYPE
from spotapi.http.errors import DeserializationError, InvalidArgumentError
from spotapi.http.models import APIResponse, Request, Response


T = TypeVar("T")

logger = structlog.get_logger()


class PydanticJSONSerializer:
    """Encodes request bodies as JSON and decodes typed response bodies.

    Response bodies are validated with a ``pydantic.TypeAdapter`` for the
    requested type, so targets can be models, builtin containers of models,
    or ``Any`` for plain decoded JSON.
    """

    def __init__(self) -> None:
        self._adapters: dict[object, TypeAdapter[Any]] = {}
        self._log = logger.bind(component="http", subcomponent="serializer")

    def serialize_request(self, request: Request) -> None:
        """Replace the request body with its JSON text.

        Bodies that are already ``str`` or ``bytes`` (or absent) are left
        untouched.

        Args:
            request: Request to update in place.

        Raises:
            InvalidArgumentError: If the body cannot be encoded as JSON.
        """
        body = request.body
        if body is None or isinstance(body, str | bytes):
            return

        if isinstance(body, BaseModel):
            request.body = body.model_dump_json(by_alias=True, exclude_none=True)
        else:
            try:
                request.body = json.dumps(body, default=_encode_model)
            except (TypeError, ValueError) as e:
                msg = f"Request body is not JSON serializable: {e}"
                raise InvalidArgumentError(msg) from e

        if not any(key.lower() == "content-type" for key in request.headers):
            request.headers["Content-Type"] = JSON_CONTENT_TYPE

    def deserialize_response(
        self, response: Response, type_: type[T]
    ) -> APIResponse[T]:
        """Decode the response body into ``type_``.

        JSON bodies are parsed and validated, other bodies are validated as
        text, and an empty body is validated as ``None``.

        Args:
            response: Response that passed error classification.
            type_: Target type.

        Returns:
            APIResponse wrapping the response and the decoded body.

        Raises:
            DeserializationError: If decoding or validation fails.
        """
        adapter = self._adapter_for(type_)
        try:
            if not response.body:
                body = adapter.validate_python(None)
            elif _is_json(response.content_type):
                body = adapter.validate_json(response.body)
            else:
                body = adapter.validate_python(response.text)
        except ValidationError as e:
            self._log.warning(
                "deserialization_failed",
                status_code=response.status_code,
                target=_type_name(type_),
                error_count=e.error_count(),
            )
            msg = f"Could not decode response body into {_type_name(type_)}: {e}"
            raise DeserializationError(msg, response, type_) from e

        return APIResponse(response=response, body=body)

    def _adapter_for(self, type_: object) -> TypeAdapter[Any]:
        try:
            return self._adapters[type_]
        except KeyError:
            adapter: TypeAdapter[Any] = TypeAdapter(type_)
            self._adapters[type_] = adapter
            return adapter
        except TypeError:
            # Unhashable type expressions are not cached
            return TypeAdapter(type_)


def _is_json(content_type: str | None) -> bool:
    # The API only speaks JSON; an unlabeled body is assumed to be JSON
    if content_type is None:
        return True
    return content_type == JSON_CONTENT_TYPE or content_type.endswith("+json")


def _encode_model(value: object) -> object:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


def _type_name(type_: object) -> str:
    return getattr(type_, "__name__", repr(type_))
