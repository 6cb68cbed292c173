"""Exceptions for malformed pipeline input.

Per-candidate outcomes such as an unlocatable paragraph are not errors;
they are recorded as rejections on the pipeline result.
"""

from __future__ import annotations


class LinkPlacerError(ValueError):
    """Base class for input the pipeline cannot work with."""


class DocumentError(LinkPlacerError):
    """The document is missing or empty."""


class CandidateError(LinkPlacerError):
    """A single candidate suggestion is malformed."""

    def __init__(self, message: str, index: int | None = None) -> None:
        self.index = index
        if index is not None:
            message = f"Candidate {index + 1}: {message}"
        super().__init__(message)
