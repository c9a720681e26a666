"""
Exceptions raised by the LabelSense AI modules.

Every error is recoverable at the level of a single upload: the app shows
the message and keeps the session running.
"""


class LabelSenseError(Exception):
    """Base class for all recoverable application errors."""


class FileReadError(LabelSenseError):
    """The uploaded file could not be read or decoded as an image."""


class InferenceError(LabelSenseError):
    """The detection service could not be reached or returned an error."""

    retryable = True


class InvalidResponseError(InferenceError):
    """The detection service answered with a malformed payload."""
