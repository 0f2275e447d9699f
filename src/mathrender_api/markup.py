"""MathML validation and assistive-SVG splitting for engine input/output."""

import re
from html.entities import html5
from typing import Tuple

from bs4 import BeautifulSoup
from lxml import etree

_NEWLINES = re.compile(r"[\r\n]+")
_XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>")
_NAMED_ENTITY = re.compile(r"&([A-Za-z][A-Za-z0-9]*);")
_XML_PREDEFINED = frozenset({"amp", "lt", "gt", "quot", "apos"})

_MATHML_PARSER = etree.XMLParser(resolve_entities=False, no_network=True)


def collapse_newlines(text: str) -> str:
    """Replace every run of CR/LF characters with a single space."""
    return _NEWLINES.sub(" ", text)


def validate_mathml(source: str) -> None:
    """
    Check that *source* is a well-formed document rooted at ``<math>``.

    Args:
        source: MathML markup as submitted by the client

    Raises:
        ValueError: Describing the first structural problem found
    """
    stripped = source.strip()
    if not stripped.startswith("<"):
        raise ValueError("MathML must be formed by a <math> element, not <#text>")

    # MathML named entities are resolved by the engine, not declared in the markup
    document = _expand_named_entities(stripped)
    try:
        root = etree.fromstring(document.encode("utf-8"), parser=_MATHML_PARSER)
    except etree.XMLSyntaxError as e:
        raise ValueError(str(e)) from e

    name = etree.QName(root).localname
    if name != "math":
        raise ValueError(f"MathML must be formed by a <math> element, not <{name}>")


def split_assistive_svg(markup: str) -> Tuple[str, str]:
    """
    Split engine SVG output into the image and its assistive MathML.

    The engine wraps both in a container, e.g.
    ``<mjx-container><svg>...</svg><mjx-assistive-mml>...</mjx-assistive-mml></mjx-container>``.

    Args:
        markup: SVG output rendered with assistive markup retained

    Returns:
        Tuple of (svg markup, assistive MathML markup)

    Raises:
        ValueError: If either part is missing
    """
    # Wrapped so that sibling roots survive XML parsing
    body = _XML_DECLARATION.sub("", markup)
    soup = BeautifulSoup(f"<mjx-split>{body}</mjx-split>", "xml")

    svg = soup.find("svg")
    if svg is None:
        raise ValueError("Engine output contains no <svg> element")

    assistive = soup.find("mjx-assistive-mml")
    if assistive is None:
        raise ValueError("Engine output contains no assistive MathML")

    # The assistive copy must not stay nested inside the image
    if svg.find("mjx-assistive-mml") is not None:
        assistive = assistive.extract()

    return str(svg), str(assistive)


def _expand_named_entities(text: str) -> str:
    """Rewrite known HTML/MathML named references as numeric character references."""

    def replace(match):
        name = match.group(1)
        if name in _XML_PREDEFINED:
            return match.group(0)
        chars = html5.get(f"{name};")
        if chars is None:
            return match.group(0)
        return "".join(f"&#x{ord(c):X};" for c in chars)

    return _NAMED_ENTITY.sub(replace, text)
