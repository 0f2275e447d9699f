"""
Tests for src/mathrender_api/engine.py

Coverage
--------
- MathJaxClient.typeset  (request payload, success, engine-reported errors,
                          HTTP failures, connection retries)
"""

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from mathrender_api.engine import EngineOutput, EngineResult, MathJaxClient
from mathrender_api.services.formats import TypesetFormat

URL = "http://mathjax.test/typeset"


class TestMathJaxClient:
    def _run(self, coro):
        return asyncio.run(coro)

    def _response(self, status_code=200, **kwargs):
        return httpx.Response(status_code, request=httpx.Request("POST", URL), **kwargs)

    def _mock_httpx_client(self, *, response=None, side_effect=None):
        mock_client = AsyncMock()
        if side_effect is not None:
            mock_client.post = AsyncMock(side_effect=side_effect)
        else:
            mock_client.post = AsyncMock(return_value=response)
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=False)
        return mock_client

    def _patch(self, mock_client):
        return patch("mathrender_api.engine.httpx.AsyncClient", return_value=mock_client)

    # request shape

    def test_payload_carries_format_outputs_and_config(self):
        mc = self._mock_httpx_client(response=self._response(json={"svg": "<svg/>"}))
        with self._patch(mc):
            self._run(
                MathJaxClient(URL).typeset(
                    "x", TypesetFormat.INLINE_TEX, (EngineOutput.SVG,), {"svg": {"scale": 2}}
                )
            )
        args, kwargs = mc.post.call_args
        assert args[0] == URL
        assert kwargs["json"] == {
            "math": "x",
            "format": "inline-TeX",
            "mml": False,
            "svg": True,
            "assistiveMml": False,
            "png": False,
            "config": {"svg": {"scale": 2}},
        }

    def test_assistive_output_requests_svg_and_assistive_mml(self):
        mc = self._mock_httpx_client(response=self._response(json={"svg": "<svg/>"}))
        with self._patch(mc):
            self._run(
                MathJaxClient(URL).typeset("x", TypesetFormat.TEX, (EngineOutput.ASSISTIVE_SVG,), {})
            )
        payload = mc.post.call_args.kwargs["json"]
        assert payload["svg"] is True
        assert payload["assistiveMml"] is True

    def test_timeout_passed_to_client(self):
        mc = self._mock_httpx_client(response=self._response(json={"mml": "<math/>"}))
        with self._patch(mc) as client_cls:
            self._run(MathJaxClient(URL, timeout=7.5).typeset("x", TypesetFormat.TEX, (EngineOutput.MML,), {}))
        client_cls.assert_called_once_with(timeout=7.5)

    # responses

    def test_success_fields(self):
        body = {"mml": "<math/>", "svg": "<svg/>", "png": "data:image/png;base64,AA=="}
        mc = self._mock_httpx_client(response=self._response(json=body))
        with self._patch(mc):
            result = self._run(
                MathJaxClient(URL).typeset("x", TypesetFormat.TEX, list(EngineOutput), {})
            )
        assert result == EngineResult(mml="<math/>", svg="<svg/>", png="data:image/png;base64,AA==")

    def test_reported_errors_returned_not_raised(self):
        mc = self._mock_httpx_client(
            response=self._response(400, json={"errors": ["Missing close brace"]})
        )
        with self._patch(mc):
            result = self._run(
                MathJaxClient(URL).typeset("{x", TypesetFormat.TEX, (EngineOutput.SVG,), {})
            )
        assert result.errors == ("Missing close brace",)

    def test_single_error_value_wrapped(self):
        mc = self._mock_httpx_client(response=self._response(json={"errors": "bad input"}))
        with self._patch(mc):
            result = self._run(
                MathJaxClient(URL).typeset("x", TypesetFormat.TEX, (EngineOutput.SVG,), {})
            )
        assert result.errors == ("bad input",)

    def test_http_error_without_report_raises(self):
        mc = self._mock_httpx_client(response=self._response(502, text="Bad Gateway"))
        with self._patch(mc):
            with pytest.raises(httpx.HTTPStatusError):
                self._run(MathJaxClient(URL).typeset("x", TypesetFormat.TEX, (EngineOutput.SVG,), {}))

    def test_non_object_body_raises(self):
        mc = self._mock_httpx_client(response=self._response(json=["svg"]))
        with self._patch(mc):
            with pytest.raises(ValueError):
                self._run(MathJaxClient(URL).typeset("x", TypesetFormat.TEX, (EngineOutput.SVG,), {}))

    # retries

    def test_connect_error_retried(self):
        mc = self._mock_httpx_client(
            side_effect=[
                httpx.ConnectError("refused"),
                self._response(json={"svg": "<svg/>"}),
            ]
        )
        with self._patch(mc):
            result = self._run(
                MathJaxClient(URL, connect_retries=2).typeset(
                    "x", TypesetFormat.TEX, (EngineOutput.SVG,), {}
                )
            )
        assert result.svg == "<svg/>"
        assert mc.post.await_count == 2

    def test_connect_error_raised_after_last_attempt(self):
        mc = self._mock_httpx_client(side_effect=httpx.ConnectError("refused"))
        with self._patch(mc):
            with pytest.raises(httpx.ConnectError):
                self._run(
                    MathJaxClient(URL, connect_retries=1).typeset(
                        "x", TypesetFormat.TEX, (EngineOutput.SVG,), {}
                    )
                )
        assert mc.post.await_count == 1

    def test_read_timeout_not_retried(self):
        mc = self._mock_httpx_client(side_effect=httpx.ReadTimeout("slow"))
        with self._patch(mc):
            with pytest.raises(httpx.ReadTimeout):
                self._run(
                    MathJaxClient(URL, connect_retries=3).typeset(
                        "x", TypesetFormat.TEX, (EngineOutput.SVG,), {}
                    )
                )
        assert mc.post.await_count == 1
