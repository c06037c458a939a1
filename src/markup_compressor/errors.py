"""Exceptions raised by the compressor."""

from __future__ import annotations


class CompressorError(Exception):
    """Base class for all compressor failures."""


class MinificationError(CompressorError):
    """The external script/style minifier rejected a block."""

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(f"Failed to minify {kind} block: {message}")
        self.kind = kind


class PlaceholderError(CompressorError):
    """A placeholder token has no matching entry in its block store.

    This means extraction and restoration went out of sync; it is never
    expected for well-formed pipelines and must not be ignored.
    """
