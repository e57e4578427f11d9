"""
Domain exceptions.

Three failure tiers, each surfaced differently by the HTTP layer:

1. Client input errors (``ValidationError``) -> 4xx, never reach the
   normalizer.
2. Upstream errors (``ExternalServiceError`` / ``ModelOutputError``) ->
   pass-through status or 200 with a bounded diagnostic excerpt.
3. Anything else -> 500 with the exception message only.
"""

from __future__ import annotations

from typing import Optional

# Upper bound for raw upstream text echoed back to the caller.
MAX_EXCERPT_CHARS = 2000


def excerpt(text: Optional[str], limit: int = MAX_EXCERPT_CHARS) -> str:
    """Return at most ``limit`` characters of ``text`` ("" for None)."""
    if not text:
        return ""
    return text[:limit]


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Base exception for all domain errors.

    Allows catching every expected failure with a single except clause
    while letting unexpected errors propagate to the 500 handler.
    """

    pass


# ═══════════════════════════════════════════════════════════
# VALIDATION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ValidationError(DomainError):
    """
    Client input validation failed.

    Example:
        >>> raise ValidationError("Body must be a JSON object")
    """

    status_code = 400


class MissingImageError(ValidationError):
    """
    Request carried no usable ``imageBase64`` value.

    Example:
        >>> raise MissingImageError()
    """

    def __init__(self, message: str = "No image provided") -> None:
        super().__init__(message)


# ═══════════════════════════════════════════════════════════
# EXTERNAL SERVICE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ExternalServiceError(DomainError):
    """
    External service call failed.

    Example:
        >>> raise ExternalServiceError("OpenAI API failed")
    """

    pass


class UpstreamHTTPError(ExternalServiceError):
    """
    Vision API answered with a non-2xx status.

    The status code is relayed to the caller unchanged together with a
    truncated copy of the upstream body.

    Example:
        >>> raise UpstreamHTTPError(429, '{"error": {"message": "Rate limit"}}')
    """

    def __init__(self, status_code: int, details: Optional[str] = None) -> None:
        self.status_code = int(status_code)
        self.details = excerpt(details)
        super().__init__(f"Upstream returned HTTP {self.status_code}")


# ═══════════════════════════════════════════════════════════
# MODEL OUTPUT EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ModelOutputError(DomainError):
    """
    The pipeline worked but the model produced nothing usable.

    Reported as HTTP 200 with an ``error`` field so callers can tell it
    apart from a failed pipeline.
    """

    message = "Model output unusable"
    excerpt_key = "raw"

    def __init__(self, raw: Optional[str] = None) -> None:
        self.raw_excerpt = excerpt(raw)
        super().__init__(self.message)

    def to_payload(self) -> dict[str, str]:
        return {"error": self.message, self.excerpt_key: self.raw_excerpt}


class EmptyModelResponseError(ModelOutputError):
    """Completion carried no content; excerpt is the raw API body."""

    message = "Empty model response"
    excerpt_key = "raw_openai"


class NonJSONModelContentError(ModelOutputError):
    """Completion content could not be parsed as a JSON object."""

    message = "Model returned non-JSON content"
    excerpt_key = "raw_model_content"
