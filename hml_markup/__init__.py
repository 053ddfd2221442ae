"""
hml-markup: HML to HTML preprocessor.

This package can be used both as a CLI tool and as a library.

CLI Usage:
    hml chapter.hml -o chapter.html

Library Usage:
    from hml_markup import HmlConfig, expand_markup

    result = expand_markup(source, HmlConfig(fragment=True))
    print(result.html)
    for diagnostic in result.diagnostics:
        print(diagnostic)
"""

from .config import ConfigError, HmlConfig
from .context import PipelineContext
from .diagnostics import Diagnostic, DiagnosticSink
from .exceptions import (
    DelimiterNotFoundError,
    EndOfInputError,
    HandlerConfigurationError,
    IncludeDepthError,
    IncludeError,
    MacroDefinitionError,
    MalformedMarkerError,
    MarkerNotFoundError,
    MarkupError,
    MissingSourceError,
    MultilineSnippetError,
    OverlappingRegionsError,
    UnmatchedDelimiterError,
)
from .models import BlockType, Document, ExpansionResult, HandlerCapability, RegionKind, Token
from .passes import DefaultHandler, Handler, Pass
from .pipeline import Pipeline, expand_markup
from .tokens import TokenStream, build_tokens

__version__ = "0.1.0"

__all__ = [
    # Core functionality
    "expand_markup",
    "Pipeline",
    "PipelineContext",
    "Pass",
    "Handler",
    "DefaultHandler",
    "TokenStream",
    "build_tokens",
    # Data models
    "BlockType",
    "Document",
    "ExpansionResult",
    "HandlerCapability",
    "RegionKind",
    "Token",
    # Configuration and diagnostics
    "HmlConfig",
    "Diagnostic",
    "DiagnosticSink",
    # Exceptions
    "ConfigError",
    "DelimiterNotFoundError",
    "EndOfInputError",
    "HandlerConfigurationError",
    "IncludeDepthError",
    "IncludeError",
    "MacroDefinitionError",
    "MalformedMarkerError",
    "MarkerNotFoundError",
    "MarkupError",
    "MissingSourceError",
    "MultilineSnippetError",
    "OverlappingRegionsError",
    "UnmatchedDelimiterError",
    # Version
    "__version__",
]
