"""Load-time errors raised while resolving a scenario document.

All of them subclass ValueError, so callers that treat a bad document as a
bad value keep working.
"""


class ScenarioError(ValueError):
    """A scenario document was rejected."""


class DefineReferenceError(ScenarioError):
    """A ``define.<path>`` reference is malformed or points nowhere."""


class CircularReferenceError(DefineReferenceError):
    """A chain of define references loops back on itself."""

    def __init__(self, chain: list[str]):
        self.chain = list(chain)
        super().__init__(
            f"Circular reference detected in define: {' -> '.join(self.chain)}"
        )


class ValidationError(ScenarioError):
    """A structural invariant failed. ``path`` locates the offending field."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)
