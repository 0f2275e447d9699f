"""Rasterize SVG markup to PNG using PyMuPDF."""

import time
import logging
from typing import Optional

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)


def rasterize_svg(
    svg: str, width: Optional[int] = None, height: Optional[int] = None
) -> bytes:
    """
    Render SVG markup to PNG bytes.

    When only one dimension is given the other follows the aspect ratio;
    with neither the SVG's intrinsic size is used.

    Args:
        svg: SVG document markup
        width: Target width in pixels
        height: Target height in pixels

    Returns:
        PNG-encoded image bytes

    Raises:
        ValueError: If the SVG cannot be opened or has no usable size
    """
    render_start = time.time()

    try:
        doc = fitz.open(stream=svg.encode("utf-8"), filetype="svg")
    except Exception as e:
        raise ValueError(f"Failed to open SVG: {e}") from e

    try:
        if doc.page_count == 0:
            raise ValueError("SVG document has no renderable content")

        page = doc.load_page(0)
        rect = page.rect
        if rect.width <= 0 or rect.height <= 0:
            raise ValueError(f"Unsupported SVG dimensions: {rect.width}x{rect.height}")

        zoom_x, zoom_y = _zoom(rect.width, rect.height, width, height)
        pix = page.get_pixmap(matrix=fitz.Matrix(zoom_x, zoom_y), alpha=True)
        png = pix.tobytes("png")
        logger.info(
            f"Rasterized SVG {rect.width:.1f}x{rect.height:.1f} -> "
            f"{pix.width}x{pix.height} px in {time.time() - render_start:.3f}s"
        )
        return png
    finally:
        doc.close()


def _zoom(src_width: float, src_height: float, width: Optional[int], height: Optional[int]):
    if width and height:
        return width / src_width, height / src_height
    if width:
        scale = width / src_width
        return scale, scale
    if height:
        scale = height / src_height
        return scale, scale
    return 1.0, 1.0


class SvgRasterizer:
    """Rasterizer collaborator used by the dispatcher for PNG output."""

    def rasterize(
        self, svg: str, width: Optional[int] = None, height: Optional[int] = None
    ) -> bytes:
        return rasterize_svg(svg, width, height)
