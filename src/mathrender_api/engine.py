"""Client for the external MathJax typesetting service."""

import time
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional, Protocol, Tuple

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

if TYPE_CHECKING:
    from .services.formats import TypesetFormat

logger = logging.getLogger(__name__)


class EngineOutput(str, Enum):
    """Representations the engine can be asked to produce in one call."""

    MML = "mml"
    SVG = "svg"
    ASSISTIVE_SVG = "assistiveSvg"
    PNG = "png"


@dataclass(frozen=True)
class EngineResult:
    """
    What the engine sent back.

    ``png`` is a data URL when present. ``errors`` holds the engine's own
    failure report (typically a list whose first item is the TeX/MathML
    syntax message) and is empty on success.
    """

    mml: Optional[str] = None
    svg: Optional[str] = None
    png: Optional[str] = None
    errors: Tuple[Any, ...] = ()


class TypesetEngine(Protocol):
    async def typeset(
        self,
        source: str,
        fmt: "TypesetFormat",
        outputs: Iterable[EngineOutput],
        config: Mapping[str, Any],
    ) -> EngineResult:
        """Render *source* in every requested output.

        *config* is the complete engine configuration for this call only.
        """


class MathJaxClient:
    """Typeset math through a MathJax rendering service over HTTP."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        connect_retries: int = 3,
    ):
        """
        Initialize the client.

        Args:
            base_url: Typeset endpoint of the rendering service
            timeout: Per-request HTTP timeout in seconds
            connect_retries: Attempts made when the connection is refused
        """
        self.base_url = base_url
        self.timeout = timeout
        self.connect_retries = connect_retries

    async def typeset(
        self,
        source: str,
        fmt: "TypesetFormat",
        outputs: Iterable[EngineOutput],
        config: Mapping[str, Any],
    ) -> EngineResult:
        """
        Ask the service to render *source*.

        The configuration travels with the request; nothing is stored on the
        client, so concurrent calls with different configurations are
        independent.

        Returns:
            EngineResult; engine-reported syntax errors are returned in
            ``errors`` rather than raised

        Raises:
            httpx.HTTPError: Transport failures and non-2xx responses
                without an error report
        """
        wanted = set(outputs)
        payload = {
            "math": source,
            "format": fmt.value,
            "mml": EngineOutput.MML in wanted,
            "svg": EngineOutput.SVG in wanted or EngineOutput.ASSISTIVE_SVG in wanted,
            "assistiveMml": EngineOutput.ASSISTIVE_SVG in wanted,
            "png": EngineOutput.PNG in wanted,
            "config": dict(config),
        }

        start = time.time()
        logger.info(
            f"Calling MathJax service: format={fmt.value}, "
            f"outputs={sorted(o.value for o in wanted)}, {len(source)} chars"
        )

        response = await self._post(payload)
        elapsed = time.time() - start

        body = self._json_body(response)
        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            logger.info(f"MathJax service reported errors in {elapsed:.3f}s: {errors!r}")
            if isinstance(errors, (list, tuple)):
                return EngineResult(errors=tuple(errors))
            return EngineResult(errors=(errors,))

        response.raise_for_status()
        if not isinstance(body, dict):
            raise ValueError("MathJax service returned a non-object JSON body")

        logger.info(f"MathJax service responded in {elapsed:.3f}s")
        return EngineResult(
            mml=body.get("mml"),
            svg=body.get("svg"),
            png=body.get("png"),
        )

    async def _post(self, payload: Mapping[str, Any]) -> httpx.Response:
        """POST *payload*, retrying only when no connection could be made."""
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(httpx.ConnectError),
            stop=stop_after_attempt(self.connect_retries),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                try:
                    async with httpx.AsyncClient(timeout=self.timeout) as client:
                        return await client.post(self.base_url, json=payload)
                except httpx.ConnectError as e:
                    logger.warning(
                        f"MathJax service unreachable (attempt "
                        f"{attempt.retry_state.attempt_number}/{self.connect_retries}): {e}"
                    )
                    raise

    @staticmethod
    def _json_body(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None
