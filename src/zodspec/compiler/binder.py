"""Bind API operations to :class:`~zodspec.models.EndpointDescriptor` objects.

Each operation's parameters, request body and responses are translated with
the same :class:`~zodspec.compiler.translator.TypeTranslator` (and cache)
that produced the named declarations.

Reference rule: a schema that is a direct ``$ref`` to a registered name is
bound as a ``named_ref`` to that declaration; every inline schema is
translated inline, with the ``$ref``s nested inside it bound as
``named_ref``s. The rule depends only on whether the schema is a reference,
never on its shape.

Response selection:

* the main response is the lowest numeric ``2xx`` status, then ``2XX``,
  and ``default`` only when the operation declares no success status;
* every other non-``2xx`` status (``default`` included) becomes an error
  response, in ascending numeric order with ``default`` last.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

from zodspec.compiler.translator import TranslationContext, TypeTranslator
from zodspec.models import (
    EndpointDescriptor,
    EndpointParameter,
    ErrorResponse,
    GeneratorConfig,
    Modifier,
    ModifierName,
    OperationSpec,
    ParameterLocation,
    PrimitiveType,
    RequestFormat,
    ResponseSpec,
    SchemaNode,
    ValidationExpression,
)
from zodspec.parser.extractor import is_json_media_type
from zodspec.parser.nodes import escape_pointer

logger = logging.getLogger(__name__)

_STATUS_RANGE = re.compile(r"^[1-5]XX$", re.IGNORECASE)


def _status_sort_key(status: str) -> tuple[int, int]:
    """Sort key: numeric codes, then ``NXX`` ranges, then ``default``."""
    if status.isdigit():
        return (0, int(status))
    if _STATUS_RANGE.match(status):
        return (1, int(status[0]) * 100)
    return (2, 0)


def _is_valid_status(status: str) -> bool:
    return status.isdigit() or bool(_STATUS_RANGE.match(status)) or status == "default"


def _is_success(status: str) -> bool:
    if status.isdigit():
        return 200 <= int(status) < 300
    return status.upper() == "2XX"


def select_responses(
    responses: Iterable[ResponseSpec],
) -> tuple[Optional[ResponseSpec], list[ResponseSpec]]:
    """Split an operation's responses into ``(main, errors)``.

    ``main`` is ``None`` when there is neither a ``2xx`` nor a ``default``
    response. Unrecognised status keys are ignored.
    """
    ordered = sorted(
        (r for r in responses if _is_valid_status(r.status)),
        key=lambda r: _status_sort_key(r.status),
    )

    main = next((r for r in ordered if _is_success(r.status)), None)
    if main is None:
        main = next((r for r in ordered if r.status == "default"), None)

    errors = [r for r in ordered if r is not main and not _is_success(r.status)]
    return main, errors


def request_format_for(content_type: Optional[str]) -> RequestFormat:
    """Map a request body media type to a :class:`~zodspec.models.RequestFormat`."""
    if content_type is None or content_type == "*/*":
        return RequestFormat.JSON
    media = content_type.split(";", 1)[0].strip().lower()
    if is_json_media_type(media):
        return RequestFormat.JSON
    if media.startswith("multipart/"):
        return RequestFormat.FORM_DATA
    if media == "application/x-www-form-urlencoded":
        return RequestFormat.FORM_URL
    if media.startswith("text/"):
        return RequestFormat.TEXT
    return RequestFormat.BINARY


class EndpointBinder:
    """Produce one :class:`~zodspec.models.EndpointDescriptor` per operation.

    Args:
        translator: The translator that already holds the named declarations.
        config: Generator options (``exclude_deprecated``).
    """

    def __init__(
        self, translator: TypeTranslator, config: Optional[GeneratorConfig] = None
    ) -> None:
        self.translator = translator
        self.config = config or translator.config

    def bind_all(self, operations: Iterable[OperationSpec]) -> list[EndpointDescriptor]:
        """Bind *operations* in document order."""
        descriptors: list[EndpointDescriptor] = []
        for operation in operations:
            if operation.deprecated and self.config.exclude_deprecated:
                logger.debug(
                    "Skipping deprecated %s %s",
                    operation.method.value.upper(),
                    operation.path,
                )
                continue
            descriptors.append(self.bind(operation))
        return descriptors

    def bind(self, operation: OperationSpec) -> EndpointDescriptor:
        pointer = f"#/paths/{escape_pointer(operation.path)}/{operation.method.value}"
        parameters: list[EndpointParameter] = []

        request_format = RequestFormat.JSON
        body = operation.request_body
        if body is not None:
            request_format = request_format_for(body.content_type)
            parameters.append(
                EndpointParameter(
                    location=ParameterLocation.BODY,
                    name="body",
                    expression=self.bind_schema(
                        body.node, f"{pointer}/requestBody", optional=not body.required
                    ),
                    description=body.description,
                )
            )

        for index, param in enumerate(operation.parameters):
            parameters.append(
                EndpointParameter(
                    location=param.location,
                    name=param.name,
                    expression=self.bind_schema(
                        param.node,
                        f"{pointer}/parameters/{index}",
                        optional=not param.required,
                    ),
                    description=param.description,
                )
            )

        main, errors = select_responses(operation.responses)
        response = self._bind_response(main, f"{pointer}/responses")
        error_responses = tuple(
            ErrorResponse(
                status=error.status,
                expression=self._bind_response(error, f"{pointer}/responses"),
                description=error.description,
            )
            for error in errors
        )

        return EndpointDescriptor(
            method=operation.method,
            path=operation.path,
            alias=operation.operation_id,
            description=operation.description or operation.summary,
            request_format=request_format,
            parameters=tuple(parameters),
            response=response,
            error_responses=error_responses,
            deprecated=operation.deprecated,
        )

    def bind_schema(
        self, node: Optional[SchemaNode], location: str, optional: bool = False
    ) -> ValidationExpression:
        """Translate a parameter or body schema; a missing schema is ``unknown``."""
        if node is None:
            expression = ValidationExpression.unknown()
            if optional:
                expression = expression.with_modifiers(Modifier(name=ModifierName.OPTIONAL))
            return expression
        return self.translator.translate(
            node, TranslationContext(optional=optional, location=location)
        )

    def _bind_response(
        self, response: Optional[ResponseSpec], location: str
    ) -> ValidationExpression:
        """Translate a response body; no response or no content is ``void``."""
        if response is None or response.content_type is None:
            return ValidationExpression.of_primitive(PrimitiveType.VOID)
        if response.node is None:
            return ValidationExpression.unknown()
        content_location = (
            f"{location}/{escape_pointer(response.status)}/content/"
            f"{escape_pointer(response.content_type)}/schema"
        )
        return self.translator.translate(
            response.node, TranslationContext(location=content_location)
        )
