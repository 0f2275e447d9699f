"""Map raw input/output tokens onto canonical format identifiers."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .errors import ConversionError, ErrorKind


class InputKind(str, Enum):
    LATEX = "latex"
    MATHML = "mathml"


class OutputKind(str, Enum):
    MATHML = "mathml"
    SVG = "svg"
    PNG = "png"
    ASSISTIVE_SVG = "assistive-svg"


class TypesetFormat(str, Enum):
    """Engine-level input mode."""

    TEX = "TeX"
    INLINE_TEX = "inline-TeX"
    MATHML = "MathML"


CONTENT_TYPES = {
    OutputKind.MATHML: "application/mathml+xml",
    OutputKind.SVG: "image/svg+xml",
    OutputKind.PNG: "image/png",
    OutputKind.ASSISTIVE_SVG: "application/json",
}


@dataclass(frozen=True)
class ResolvedFormat:
    """Selects the dispatch entry for one request."""

    typeset_format: TypesetFormat
    output_kind: OutputKind


def parse_input_kind(token: Optional[object]) -> InputKind:
    """Raise InvalidInput unless *token* names a supported input kind."""
    try:
        return InputKind(token)
    except ValueError:
        raise ConversionError(
            ErrorKind.INVALID_INPUT, f"Invalid input: {_display(token)}"
        ) from None


def parse_output_kind(token: Optional[object]) -> OutputKind:
    """Raise InvalidOutput unless *token* names a supported output kind."""
    try:
        return OutputKind(token)
    except ValueError:
        raise ConversionError(
            ErrorKind.INVALID_OUTPUT, f"Invalid output: {_display(token)}"
        ) from None


def resolve_input(kind: Union[InputKind, str], inline: bool = False) -> TypesetFormat:
    """Map an input kind (and the inline flag for LaTeX) to the engine format."""
    kind = parse_input_kind(kind)
    if kind is InputKind.MATHML:
        return TypesetFormat.MATHML
    return TypesetFormat.INLINE_TEX if inline else TypesetFormat.TEX


def resolve_output(kind: Union[OutputKind, str]) -> OutputKind:
    """Validate an output token; output kinds map onto themselves."""
    return parse_output_kind(kind)


def is_noop(input_kind: InputKind, output_kind: OutputKind) -> bool:
    """MathML-to-MathML is the only conversion that bypasses the engine."""
    return input_kind is InputKind.MATHML and output_kind is OutputKind.MATHML


def resolve(request) -> ResolvedFormat:
    """Derive the dispatch key from a ConversionRequest."""
    return ResolvedFormat(
        typeset_format=resolve_input(request.input_kind, request.inline),
        output_kind=resolve_output(request.output_kind),
    )


def _display(token: Optional[object]) -> str:
    if token is None:
        return ""
    return str(token)
