"""Error taxonomy shared by the extraction and narration pipeline."""

from __future__ import annotations

from typing import Any


class ScripturaError(Exception):
    """Base class for every error raised by the pipeline."""

    status_code: int = 500


class ClientError(ScripturaError):
    """The caller asked for something that can never succeed (never retried)."""

    status_code = 400


class UnknownVersionError(ClientError):
    status_code = 404

    def __init__(self, abbreviation: str) -> None:
        super().__init__(f"Bible version abbreviation '{abbreviation}' not found.")
        self.abbreviation = abbreviation


class UnsupportedLanguageError(ClientError):
    def __init__(self, language: str) -> None:
        super().__init__(f"Unsupported or unknown language code: '{language}'.")
        self.language = language


class MalformedReferenceError(ClientError):
    def __init__(self, field: str, value: object) -> None:
        super().__init__(f"Invalid {field}: '{value}'.")
        self.field = field
        self.value = value


class UpstreamError(ScripturaError):
    """Base class for failures talking to the upstream content source."""

    status_code = 502

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class UpstreamStaleTokenError(UpstreamError):
    """The upstream answered "not found" for a token-addressed resource."""


class UpstreamUnavailableError(UpstreamError):
    """Timeout, network failure or an unexpected response shape."""


class TokenUnavailableError(UpstreamUnavailableError):
    """The upstream token could not be extracted from the landing page."""


class ParseError(ScripturaError):
    """Root structural containers are missing from the markup.

    ``document`` holds whatever could still be extracted.
    """

    def __init__(self, message: str, document: Any = None) -> None:
        super().__init__(message)
        self.document = document


class SynthesisError(ScripturaError):
    """A chunk could not be turned into audio."""


class ConcatenationError(ScripturaError):
    """Staged chunk audio could not be merged into one file."""


class StorageError(ScripturaError):
    """Object storage read or write failed."""
