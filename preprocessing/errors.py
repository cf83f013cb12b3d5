"""Exceptions raised by preprocessing stages."""


class PreprocessingError(Exception):
    """Base class for all preprocessing failures."""


class InvalidParameter(PreprocessingError, ValueError):
    """A numeric parameter is outside its accepted range.

    Raised before any pixel work starts, so a failed call leaves no
    partial output behind.
    """


class InvalidTargetHeight(InvalidParameter):
    """Target character height outside the supported range."""

    def __init__(self, height: int, min_height: int, max_height: int):
        self.height = height
        super().__init__(
            f"Invalid target height: {height}. "
            f"Must be between {min_height} and {max_height} pixels"
        )


class ProcessingFailure(PreprocessingError, RuntimeError):
    """An internal invariant was violated while processing an image."""
