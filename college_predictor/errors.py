class InvalidFilterError(ValueError):
    """User-correctable problem with the query parameters."""


class RetrievalError(RuntimeError):
    """The cutoff dataset could not be read or queried."""
