"""Route a resolved format pair to the engine (and rasterizer) calls it needs."""

import asyncio
import base64
import json
import time
import logging
from dataclasses import dataclass
from itertools import product
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple, Union

from ..engine import EngineOutput, EngineResult, TypesetEngine
from ..markup import collapse_newlines, split_assistive_svg, validate_mathml
from .data_url import PayloadEncoding, decode_data_url
from .errors import ConversionError, ErrorKind, translate_error
from .formats import CONTENT_TYPES, OutputKind, ResolvedFormat, TypesetFormat

logger = logging.getLogger(__name__)

# Handled by the gateway's pass-through before dispatch
NOOP_PAIRS = frozenset({(TypesetFormat.MATHML, OutputKind.MATHML)})


@dataclass(frozen=True)
class ConversionResult:
    """Successful conversion output. Binary payloads are base64 text."""

    content_type: str
    payload: str
    encoding: PayloadEncoding = PayloadEncoding.UTF8

    @property
    def is_base64(self) -> bool:
        return self.encoding is PayloadEncoding.BASE64

    def to_bytes(self) -> bytes:
        if self.is_base64:
            return base64.b64decode(self.payload)
        return self.payload.encode("utf-8")


Handler = Callable[[TypesetFormat, str, Mapping[str, Any], Optional[int], Optional[int]], Awaitable[ConversionResult]]


class ConversionDispatcher:
    """
    Owns the only I/O-bound work of a conversion: the engine call and,
    for PNG, rasterization.

    Without a rasterizer the engine is asked for PNG directly and its data
    URL is decoded.
    """

    def __init__(self, engine: TypesetEngine, rasterizer=None):
        self._engine = engine
        self._rasterizer = rasterizer

        tex_formats = (TypesetFormat.TEX, TypesetFormat.INLINE_TEX)
        self._table: Dict[Tuple[TypesetFormat, OutputKind], Handler] = {}
        for fmt in tex_formats:
            self._table[(fmt, OutputKind.MATHML)] = self._to_mathml
            self._table[(fmt, OutputKind.SVG)] = self._to_svg
            self._table[(fmt, OutputKind.ASSISTIVE_SVG)] = self._to_assistive_svg
            self._table[(fmt, OutputKind.PNG)] = self._to_png
        self._table[(TypesetFormat.MATHML, OutputKind.SVG)] = self._mathml_to_svg
        self._table[(TypesetFormat.MATHML, OutputKind.ASSISTIVE_SVG)] = self._mathml_to_assistive_svg
        self._table[(TypesetFormat.MATHML, OutputKind.PNG)] = self._mathml_to_png

        self._check_table()

    def _check_table(self) -> None:
        """Every format pair must be dispatchable or explicitly a no-op."""
        missing = [
            pair
            for pair in product(TypesetFormat, OutputKind)
            if pair not in self._table and pair not in NOOP_PAIRS
        ]
        if missing:
            raise RuntimeError(f"Dispatch table has no entry for: {missing}")

    async def dispatch(
        self,
        resolved: ResolvedFormat,
        source: str,
        config: Mapping[str, Any],
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> ConversionResult:
        """
        Convert *source* according to *resolved*.

        Args:
            resolved: Typeset format and output kind
            source: Math markup
            config: Complete engine configuration for this call
            width: PNG width in pixels
            height: PNG height in pixels

        Raises:
            ConversionError: UnsupportedPair, ValidationFailed or EngineFailure
        """
        key = (resolved.typeset_format, resolved.output_kind)
        handler = self._table.get(key)
        if handler is None:
            raise ConversionError(ErrorKind.UNSUPPORTED_PAIR, "Nothing to convert")
        return await handler(resolved.typeset_format, source, config, width, height)

    # ------------------------------------------------------------------
    # Dispatch entries
    # ------------------------------------------------------------------

    async def _to_mathml(self, fmt, source, config, width, height) -> ConversionResult:
        res = await self._typeset(source, fmt, EngineOutput.MML, config)
        return ConversionResult(CONTENT_TYPES[OutputKind.MATHML], _require(res.mml, "mml"))

    async def _to_svg(self, fmt, source, config, width, height) -> ConversionResult:
        res = await self._typeset(source, fmt, EngineOutput.SVG, config)
        return ConversionResult(CONTENT_TYPES[OutputKind.SVG], _require(res.svg, "svg"))

    async def _to_assistive_svg(self, fmt, source, config, width, height) -> ConversionResult:
        res = await self._typeset(source, fmt, EngineOutput.ASSISTIVE_SVG, config)
        try:
            svg, assistive = split_assistive_svg(_require(res.svg, "svg"))
        except ValueError as e:
            raise ConversionError(ErrorKind.ENGINE_FAILURE, str(e)) from e
        payload = json.dumps({"svg": svg, "assistiveML": assistive})
        return ConversionResult(CONTENT_TYPES[OutputKind.ASSISTIVE_SVG], payload)

    async def _to_png(self, fmt, source, config, width, height) -> ConversionResult:
        if self._rasterizer is None:
            res = await self._typeset(source, fmt, EngineOutput.PNG, config)
            return _binary_result(_require(res.png, "png"), CONTENT_TYPES[OutputKind.PNG])

        res = await self._typeset(source, fmt, EngineOutput.SVG, config)
        svg = _require(res.svg, "svg")

        start = time.time()
        loop = asyncio.get_running_loop()
        try:
            png = await loop.run_in_executor(None, self._rasterizer.rasterize, svg, width, height)
        except Exception as e:
            logger.error(f"Rasterization failed after {time.time() - start:.3f}s: {e}")
            raise ConversionError(ErrorKind.ENGINE_FAILURE, f"Rasterization failed: {e}") from e
        return _binary_result(png, CONTENT_TYPES[OutputKind.PNG])

    async def _mathml_to_svg(self, fmt, source, config, width, height) -> ConversionResult:
        _check_mathml(source)
        return await self._to_svg(fmt, source, config, width, height)

    async def _mathml_to_assistive_svg(self, fmt, source, config, width, height) -> ConversionResult:
        _check_mathml(source)
        return await self._to_assistive_svg(fmt, source, config, width, height)

    async def _mathml_to_png(self, fmt, source, config, width, height) -> ConversionResult:
        _check_mathml(source)
        return await self._to_png(fmt, source, config, width, height)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _typeset(
        self,
        source: str,
        fmt: TypesetFormat,
        output: EngineOutput,
        config: Mapping[str, Any],
    ) -> EngineResult:
        """Call the engine and turn every failure shape into a ConversionError."""
        start = time.time()
        try:
            result = await self._engine.typeset(source, fmt, (output,), config)
        except ConversionError:
            raise
        except Exception as e:
            logger.error(f"Engine call failed after {time.time() - start:.3f}s: {e!r}")
            raise translate_error(e) from e

        if result.errors:
            raise translate_error(list(result.errors))

        logger.info(f"Engine produced {output.value} in {time.time() - start:.3f}s")
        return result


def _check_mathml(source: str) -> None:
    try:
        validate_mathml(source)
    except ValueError as e:
        raise ConversionError(
            ErrorKind.VALIDATION_FAILED, f"Invalid MathML: {collapse_newlines(str(e))}"
        ) from e


def _require(value: Optional[str], name: str) -> str:
    if not value:
        raise ConversionError(ErrorKind.ENGINE_FAILURE, f"Engine returned no {name} output")
    return value


def _binary_result(raw: Union[bytes, str], default_content_type: str) -> ConversionResult:
    """Normalize raw bytes or a data URL into a base64 ConversionResult."""
    if isinstance(raw, (bytes, bytearray)):
        data = base64.b64encode(bytes(raw)).decode("ascii")
        return ConversionResult(default_content_type, data, PayloadEncoding.BASE64)

    try:
        parsed = decode_data_url(raw)
    except ValueError as e:
        raise ConversionError(ErrorKind.ENGINE_FAILURE, str(e)) from e

    data = parsed.data
    if not parsed.is_base64:
        data = base64.b64encode(data.encode("utf-8")).decode("ascii")
    return ConversionResult(
        parsed.media_type or default_content_type, data, PayloadEncoding.BASE64
    )
