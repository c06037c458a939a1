"""Markup Compressor - Minify HTML, JSP and XML while keeping whitespace-sensitive blocks intact."""

from markup_compressor.compressor import (
    CompressionResult,
    HtmlCompressor,
    HtmlOptions,
    PreservedBlock,
    XmlCompressor,
    XmlOptions,
    compress,
    compress_file,
    compress_with_stats,
    detect_dialect,
    get_compressor,
)
from markup_compressor.errors import CompressorError, MinificationError, PlaceholderError
from markup_compressor.minifiers import Minifier, MinifierOptions, default_minifier

__all__ = [
    "compress",
    "compress_with_stats",
    "compress_file",
    "detect_dialect",
    "get_compressor",
    "HtmlCompressor",
    "XmlCompressor",
    "HtmlOptions",
    "XmlOptions",
    "CompressionResult",
    "PreservedBlock",
    "Minifier",
    "MinifierOptions",
    "default_minifier",
    "CompressorError",
    "MinificationError",
    "PlaceholderError",
]
