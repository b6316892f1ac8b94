"""
Request-level error types.

The API maps these onto 400 and 404 responses. They subclass the builtin
ValueError and LookupError so callers that only care about the category
can keep catching those.
"""


class InvalidRequestError(ValueError):
    """Input or current state rules out the requested operation."""


class NotFoundError(LookupError):
    """A record does not exist, or does not belong to the requesting owner."""
