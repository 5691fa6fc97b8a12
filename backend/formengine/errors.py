class FormEngineError(Exception):
    """Base class for errors raised by formengine."""


class InvalidSchemaError(FormEngineError, ValueError):
    """A payload could not be loaded as a form schema."""

    def __init__(self, message: str, problems=None):
        super().__init__(message)
        self.problems = list(problems or [])
