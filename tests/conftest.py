"""Shared fakes for the conversion pipeline tests."""

import asyncio
import base64
from html import escape

import pytest

from mathrender_api.engine import EngineOutput, EngineResult
from mathrender_api.rasterize import SvgRasterizer
from mathrender_api.services.dispatcher import ConversionDispatcher
from mathrender_api.services.gateway import Gateway
from mathrender_api.services.request_normalizer import RequestNormalizer

PNG_SIGNATURE = bytes([0x89, 0x50, 0x4E, 0x47, 0x0D, 0x0A, 0x1A, 0x0A])

MATHML_NS = "http://www.w3.org/1998/Math/MathML"

TEST_INPUTS = {
    "TeX": {"input": "latex", "source": "e^{i \\pi} + 1 = 0"},
    "inline-TeX": {"input": "latex", "inline": True, "source": "e^{i \\pi} + 1 = 0"},
    "MathML": {
        "input": "mathml",
        "source": f'<math xmlns="{MATHML_NS}" display="block"><msup><mi>x</mi><mn>2</mn></msup></math>',
    },
    "inline-MathML": {
        "input": "mathml",
        "source": f'<math xmlns="{MATHML_NS}" display="inline"><msup><mi>x</mi><mn>2</mn></msup></math>',
    },
}


class FakeEngine:
    """
    Stand-in for the MathJax service.

    Produces small but structurally realistic output and records every call.
    The SVG carries ``config["marker"]`` in its <desc> so tests can see which
    configuration a call used.
    """

    def __init__(self, *, errors=None, exc=None, delay=0.0, delays=None):
        self.errors = errors
        self.exc = exc
        self.delay = delay
        self.delays = delays or {}
        self.calls = []

    async def typeset(self, source, fmt, outputs, config):
        outputs = tuple(outputs)
        config = dict(config)
        self.calls.append({"source": source, "format": fmt, "outputs": outputs, "config": config})

        delay = self.delays.get(config.get("marker"), self.delay)
        if delay:
            await asyncio.sleep(delay)
        if self.exc is not None:
            raise self.exc
        if self.errors is not None:
            return EngineResult(errors=tuple(self.errors))

        marker = escape(str(config.get("marker", "")))
        svg = (
            '<svg xmlns="http://www.w3.org/2000/svg" width="20" height="10" viewBox="0 0 20 10">'
            f"<desc>{marker}</desc>"
            '<rect x="0" y="0" width="20" height="10" fill="black"/>'
            "</svg>"
        )
        display = "inline" if fmt.value == "inline-TeX" else "block"
        mml = f'<math xmlns="{MATHML_NS}" display="{display}"><mi>{escape(source)}</mi></math>'

        result = {}
        if EngineOutput.MML in outputs:
            result["mml"] = mml
        if EngineOutput.SVG in outputs:
            result["svg"] = svg
        if EngineOutput.ASSISTIVE_SVG in outputs:
            result["svg"] = (
                '<mjx-container class="MathJax" jax="SVG">'
                f"{svg}"
                f'<mjx-assistive-mml unselectable="on" display="{display}">{mml}</mjx-assistive-mml>'
                "</mjx-container>"
            )
        if EngineOutput.PNG in outputs:
            data = base64.b64encode(PNG_SIGNATURE + b"fake-image").decode("ascii")
            result["png"] = f"data:image/png;base64,{data}"
        return EngineResult(**result)


def make_gateway(engine=None, *, rasterizer="local", defaults=None, timeout=5.0, allow_override=True):
    engine = engine or FakeEngine()
    dispatcher = ConversionDispatcher(
        engine, SvgRasterizer() if rasterizer == "local" else rasterizer
    )
    return Gateway(
        dispatcher,
        RequestNormalizer(allow_config_override=allow_override),
        engine_defaults=defaults,
        timeout=timeout,
    )


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def gateway(fake_engine):
    return make_gateway(fake_engine)
