"""Cloud-function entry point for API-Gateway proxy events."""

import asyncio
import base64
import logging
from typing import Any, Dict

from .main import get_gateway
from .services.errors import ConversionError, ErrorKind
from .services.gateway import error_response

logger = logging.getLogger(__name__)

RENDER_PATH = "/render"


def handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    """
    Serve one API-Gateway proxy event.

    Args:
        event: Proxy event with ``httpMethod``, ``path``, ``headers``,
            ``queryStringParameters``, ``body`` and ``isBase64Encoded``
        context: Runtime context (unused)

    Returns:
        Proxy response with ``statusCode``, ``headers``, ``body`` and
        ``isBase64Encoded``
    """
    path = event.get("path") or RENDER_PATH
    if not path.rstrip("/").endswith(RENDER_PATH):
        logger.info(f"No route for {path}")
        response = error_response(ConversionError(ErrorKind.NOT_FOUND, "Not Found"))
    else:
        body = event.get("body")
        if body is not None and event.get("isBase64Encoded"):
            body = base64.b64decode(body)
        response = asyncio.run(
            get_gateway().handle(
                event.get("httpMethod", "GET"),
                query=event.get("queryStringParameters") or {},
                body=body,
                headers=event.get("headers") or {},
            )
        )

    return {
        "statusCode": response.status_code,
        "headers": response.headers,
        "body": response.body,
        "isBase64Encoded": response.is_base64_encoded,
    }
