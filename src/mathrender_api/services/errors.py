"""Error taxonomy for the conversion pipeline and the translator that feeds it."""

import json
import logging
from enum import Enum
from typing import Dict, Optional

from ..markup import collapse_newlines

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Every failure the gateway can report, with its default HTTP status."""

    INVALID_INPUT = "InvalidInput"
    INVALID_OUTPUT = "InvalidOutput"
    UNSUPPORTED_PAIR = "UnsupportedPair"
    EMPTY_SOURCE = "EmptySource"
    NOT_ACCEPTABLE = "NotAcceptable"
    VALIDATION_FAILED = "ValidationFailed"
    ENGINE_FAILURE = "EngineFailure"
    NOT_FOUND = "NotFound"
    METHOD_NOT_ALLOWED = "MethodNotAllowed"


_DEFAULT_STATUS = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.INVALID_OUTPUT: 400,
    ErrorKind.UNSUPPORTED_PAIR: 400,
    ErrorKind.EMPTY_SOURCE: 400,
    ErrorKind.NOT_ACCEPTABLE: 406,
    ErrorKind.VALIDATION_FAILED: 400,
    ErrorKind.ENGINE_FAILURE: 500,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.METHOD_NOT_ALLOWED: 405,
}

GENERIC_ENGINE_MESSAGE = "Conversion failed"


class ConversionError(Exception):
    """
    Tagged failure raised anywhere in the pipeline.

    Attributes:
        kind:        Which taxonomy entry this is.
        message:     Client-facing text (replaced by a reason phrase for 5xx).
        status_hint: HTTP status the response layer should use.
        headers:     Extra response headers (e.g. ``Allow`` for 405).
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status_hint: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_hint = status_hint if status_hint is not None else _DEFAULT_STATUS[kind]
        self.headers = dict(headers or {})

    @property
    def is_client_error(self) -> bool:
        return self.status_hint < 500

    def __repr__(self) -> str:
        return f"ConversionError({self.kind.value}, {self.message!r}, {self.status_hint})"


def translate_error(raw: object) -> ConversionError:
    """
    Reconcile whatever a collaborator threw or reported into a ConversionError.

    Classification order:
        1. Already tagged: returned unchanged.
        2. Native parse/syntax failure (bad JSON, XML syntax): ValidationFailed.
        3. Sequence whose first item is text (engine syntax errors):
           ValidationFailed with ``Invalid source: <first item>``.
        4. Plain text: EngineFailure carrying that text.
        5. Anything else: EngineFailure with a generic message.
    """
    if isinstance(raw, ConversionError):
        return raw

    if isinstance(raw, (json.JSONDecodeError, SyntaxError)):
        return ConversionError(ErrorKind.VALIDATION_FAILED, collapse_newlines(str(raw)))

    if isinstance(raw, (list, tuple)) and raw and isinstance(raw[0], str):
        return ConversionError(
            ErrorKind.VALIDATION_FAILED,
            f"Invalid source: {collapse_newlines(raw[0])}",
        )

    if isinstance(raw, str):
        return ConversionError(ErrorKind.ENGINE_FAILURE, raw)

    logger.debug(f"Untranslatable failure value of type {type(raw).__name__}: {raw!r}")
    return ConversionError(ErrorKind.ENGINE_FAILURE, GENERIC_ENGINE_MESSAGE)
