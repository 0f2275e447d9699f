"""Services package for the Math Render API."""

from .dispatcher import ConversionDispatcher, ConversionResult
from .errors import ConversionError, ErrorKind, translate_error
from .gateway import Gateway, GatewayResponse, build_gateway
from .request_normalizer import ConversionRequest, RequestNormalizer

__all__ = [
    "ConversionDispatcher",
    "ConversionResult",
    "ConversionError",
    "ErrorKind",
    "translate_error",
    "Gateway",
    "GatewayResponse",
    "build_gateway",
    "ConversionRequest",
    "RequestNormalizer",
]
