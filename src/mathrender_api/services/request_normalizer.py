"""Turn direct calls, query strings and JSON bodies into one ConversionRequest."""

import json
import logging
import math
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ConversionError, ErrorKind, translate_error
from .formats import InputKind, OutputKind, parse_input_kind, parse_output_kind
from .negotiation import negotiate

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


class ConversionRequest(BaseModel):
    """Canonical, validated unit of work. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    input_kind: InputKind
    inline: bool = False
    source: str
    output_kind: OutputKind
    raster_width: Optional[int] = Field(default=None, gt=0)
    raster_height: Optional[int] = Field(default=None, gt=0)
    engine_config: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("source")
    @classmethod
    def validate_source(cls, v):
        if not v.strip():
            raise ValueError("source must not be blank")
        return v


class RequestNormalizer:
    """
    Build ConversionRequests from the three request shapes:

    * a mapping handed over by a direct caller,
    * percent-decoded query parameters (every value a string),
    * a JSON request body.
    """

    def __init__(self, allow_config_override: bool = True):
        self.allow_config_override = allow_config_override

    def normalize(
        self,
        raw: Union[ConversionRequest, Mapping[str, Any]],
        accept: Optional[str] = None,
    ) -> ConversionRequest:
        """
        Validate *raw* and build a ConversionRequest.

        Args:
            raw: Request fields (``input``/``type``, ``inline``, ``source``,
                ``output``, ``width``, ``height``, ``config``)
            accept: ``Accept`` header used when ``output`` is absent

        Raises:
            ConversionError: InvalidInput, InvalidOutput, NotAcceptable,
                EmptySource or ValidationFailed
        """
        if isinstance(raw, ConversionRequest):
            return raw
        if not isinstance(raw, Mapping):
            raise ConversionError(
                ErrorKind.VALIDATION_FAILED, "Request body must be a JSON object"
            )

        input_token = raw.get("input")
        if input_token is None:
            input_token = raw.get("type")
        input_kind = parse_input_kind(input_token)

        output_token = raw.get("output")
        if output_token is None or output_token == "":
            output_kind = negotiate(accept)
        else:
            output_kind = parse_output_kind(output_token)

        source = raw.get("source")
        if not isinstance(source, str) or not source.strip():
            raise ConversionError(ErrorKind.EMPTY_SOURCE, "Missing or empty source")

        inline = raw.get("inline", False)
        if inline is None:
            inline = False
        if not isinstance(inline, bool):
            raise ConversionError(
                ErrorKind.VALIDATION_FAILED, 'Invalid "inline": must be a boolean'
            )

        return ConversionRequest(
            input_kind=input_kind,
            inline=inline,
            source=source,
            output_kind=output_kind,
            raster_width=_dimension(raw, "width"),
            raster_height=_dimension(raw, "height"),
            engine_config=self._engine_config(raw.get("config")),
        )

    def from_query(
        self, params: Mapping[str, str], accept: Optional[str] = None
    ) -> ConversionRequest:
        """Coerce string query parameters, then normalize."""
        data: Dict[str, Any] = dict(params)
        if "inline" in data:
            data["inline"] = data["inline"] == "1"
        for name in ("width", "height"):
            if name in data:
                data[name] = _parse_int(name, data[name])
        # Engine configuration is only accepted in JSON bodies
        data.pop("config", None)
        return self.normalize(data, accept)

    def from_body(
        self, body: Union[str, bytes, None], accept: Optional[str] = None
    ) -> ConversionRequest:
        """Parse a JSON body strictly, then normalize."""
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        try:
            data = json.loads(body or "")
        except json.JSONDecodeError as e:
            raise translate_error(e) from e
        return self.normalize(data, accept)

    def from_http(
        self,
        method: str,
        query: Mapping[str, str],
        body: Union[str, bytes, None],
        content_type: Optional[str] = None,
        accept: Optional[str] = None,
    ) -> ConversionRequest:
        """Select the query (GET) or body (POST) shape by request method."""
        logger.debug(f"Normalizing {method} request (content-type: {content_type})")
        if method.upper() == "GET":
            return self.from_query(query, accept)

        media_type = (content_type or "").split(";")[0].strip().lower()
        if media_type and media_type != JSON_CONTENT_TYPE:
            raise ConversionError(ErrorKind.VALIDATION_FAILED, "Invalid request content type")
        return self.from_body(body, accept)

    def _engine_config(self, config: Any) -> Dict[str, Any]:
        if config is None:
            return {}
        if not isinstance(config, Mapping):
            raise ConversionError(
                ErrorKind.VALIDATION_FAILED, 'Invalid "config": must be an object'
            )
        if config and not self.allow_config_override:
            raise ConversionError(
                ErrorKind.UNSUPPORTED_PAIR, "Per-request engine configuration is disabled"
            )
        return dict(config)


def _dimension(raw: Mapping[str, Any], name: str) -> Optional[int]:
    value = raw.get(name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConversionError(ErrorKind.VALIDATION_FAILED, f"Invalid {name}: {value}")
    if not math.isfinite(value) or value != int(value) or value <= 0:
        raise ConversionError(ErrorKind.VALIDATION_FAILED, f"Invalid {name}: {value}")
    return int(value)


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value.strip(), 10)
    except (AttributeError, ValueError):
        raise ConversionError(ErrorKind.VALIDATION_FAILED, f"Invalid {name}: {value}") from None
