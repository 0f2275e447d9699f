"""
Math Render API package.

FastAPI gateway converting LaTeX or MathML into MathML, SVG, PNG or an
assistive-SVG bundle via an external MathJax rendering service. The
conversion endpoint is `/render`.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
