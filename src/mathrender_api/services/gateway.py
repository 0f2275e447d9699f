"""Orchestrates one conversion request from raw input to response."""

import asyncio
import base64
import json
import time
import uuid
import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from ..config import Settings
from ..engine import MathJaxClient, TypesetEngine
from ..rasterize import SvgRasterizer
from .dispatcher import ConversionDispatcher, ConversionResult
from .errors import ConversionError, ErrorKind, translate_error
from .formats import CONTENT_TYPES, OutputKind, is_noop, resolve
from .request_normalizer import ConversionRequest, RequestNormalizer

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("GET", "POST", "OPTIONS")

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Methods": ", ".join(ALLOWED_METHODS),
    "Access-Control-Allow-Headers": "Content-Type, Accept",
}


@dataclass(frozen=True)
class GatewayResponse:
    """Transport-neutral response (the API-Gateway proxy shape)."""

    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""
    is_base64_encoded: bool = False

    @property
    def content(self) -> bytes:
        """Body as raw bytes, base64-decoded when flagged."""
        if self.is_base64_encoded:
            return base64.b64decode(self.body)
        return self.body.encode("utf-8")


class Gateway:
    """
    Runs the conversion pipeline for a single request:

    1. Normalize the raw request into a ConversionRequest.
    2. Short-circuit MathML-to-MathML without touching the engine.
    3. Resolve the (typeset format, output kind) pair.
    4. Dispatch to the engine under a wall-clock timeout.
    5. Encode the result, or translate the failure into an error response.

    Engine defaults are fixed at construction and never mutated; every call
    gets its own merged configuration.
    """

    def __init__(
        self,
        dispatcher: ConversionDispatcher,
        normalizer: Optional[RequestNormalizer] = None,
        engine_defaults: Optional[Mapping[str, Any]] = None,
        timeout: float = 30.0,
    ) -> None:
        self._dispatcher = dispatcher
        self._normalizer = normalizer or RequestNormalizer()
        self._engine_defaults = MappingProxyType(dict(engine_defaults or {}))
        self._timeout = timeout

    @property
    def engine_defaults(self) -> Mapping[str, Any]:
        return self._engine_defaults

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def convert(
        self,
        request: Union[ConversionRequest, Mapping[str, Any]],
        accept: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> ConversionResult:
        """
        Convert a directly supplied request.

        Args:
            request: ConversionRequest or a mapping of request fields
            accept: ``Accept`` header used when no output kind is given
            request_id: Correlation token used in log messages

        Returns:
            ConversionResult

        Raises:
            ConversionError: For every failure, already classified
        """
        request_id = request_id or _new_request_id()
        conversion = self._normalizer.normalize(request, accept)
        return await self._run(conversion, request_id)

    async def handle(
        self,
        method: str,
        query: Optional[Mapping[str, str]] = None,
        body: Union[str, bytes, None] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> GatewayResponse:
        """
        Serve one HTTP-style request and never raise.

        Args:
            method: HTTP method
            query: Decoded query-string parameters
            body: Raw request body
            headers: Request headers (matched case-insensitively)

        Returns:
            GatewayResponse ready for any transport
        """
        request_id = _new_request_id()
        method = (method or "").upper()
        headers = _lower_keys(headers or {})
        start = time.time()

        try:
            if method == "OPTIONS":
                return GatewayResponse(200, {**CORS_HEADERS, **PREFLIGHT_HEADERS})
            if method not in ALLOWED_METHODS:
                raise ConversionError(
                    ErrorKind.METHOD_NOT_ALLOWED,
                    "Method Not Allowed",
                    headers={"Allow": ", ".join(ALLOWED_METHODS)},
                )

            conversion = self._normalizer.from_http(
                method,
                query or {},
                body,
                content_type=headers.get("content-type"),
                accept=headers.get("accept"),
            )
            result = await self._run(conversion, request_id)
            response = encode_result(result)
        except Exception as e:
            error = translate_error(e)
            if not error.is_client_error:
                logger.error(f"[{request_id}] {method} failed: {error!r}", exc_info=e)
            response = error_response(error)

        logger.info(
            f"[{request_id}] {method} -> {response.status_code} in {time.time() - start:.3f}s"
        )
        return response

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _run(self, conversion: ConversionRequest, request_id: str) -> ConversionResult:
        if is_noop(conversion.input_kind, conversion.output_kind):
            logger.info(f"[{request_id}] MathML-to-MathML pass-through")
            return ConversionResult(CONTENT_TYPES[OutputKind.MATHML], conversion.source)

        resolved = resolve(conversion)
        config = MappingProxyType({**self._engine_defaults, **conversion.engine_config})

        start = time.time()
        logger.info(
            f"[{request_id}] Converting {resolved.typeset_format.value} -> "
            f"{resolved.output_kind.value} ({len(conversion.source)} chars)"
        )
        try:
            result = await asyncio.wait_for(
                self._dispatcher.dispatch(
                    resolved,
                    conversion.source,
                    config,
                    conversion.raster_width,
                    conversion.raster_height,
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"[{request_id}] Conversion abandoned after {self._timeout}s")
            raise ConversionError(
                ErrorKind.ENGINE_FAILURE,
                f"Conversion timed out after {self._timeout}s",
                status_hint=504,
            ) from None

        logger.info(
            f"[{request_id}] Conversion complete in {time.time() - start:.3f}s "
            f"({result.content_type}, {len(result.payload)} chars)"
        )
        return result


def encode_result(result: ConversionResult) -> GatewayResponse:
    headers = {**CORS_HEADERS, "Content-Type": result.content_type}
    return GatewayResponse(200, headers, result.payload, result.is_base64)


def error_response(error: ConversionError) -> GatewayResponse:
    """Build the JSON error body; server errors expose only the reason phrase."""
    if error.is_client_error:
        message = error.message
    else:
        message = HTTPStatus(error.status_hint).phrase

    headers = {**CORS_HEADERS, **error.headers, "Content-Type": "application/json"}
    return GatewayResponse(error.status_hint, headers, json.dumps({"message": message}))


def build_gateway(settings: Settings, engine: Optional[TypesetEngine] = None) -> Gateway:
    """Wire the gateway from settings; *engine* overrides the MathJax client."""
    if engine is None:
        engine = MathJaxClient(
            settings.engine_url,
            timeout=settings.engine_timeout,
            connect_retries=settings.engine_connect_retries,
        )
    rasterizer = SvgRasterizer() if settings.rasterizer == "local" else None
    return Gateway(
        ConversionDispatcher(engine, rasterizer),
        RequestNormalizer(allow_config_override=settings.allow_config_override),
        engine_defaults=settings.engine_defaults,
        timeout=settings.engine_timeout,
    )


def _new_request_id() -> str:
    return uuid.uuid4().hex[:8]


def _lower_keys(headers: Mapping[str, str]) -> Dict[str, str]:
    return {str(k).lower(): v for k, v in headers.items()}
