"""Define-reference resolution.

A scenario's ``define`` section holds reusable values. Anywhere in the
document, a string of the form ``"define.<dotted.path>"`` is replaced by the
value reached by walking ``<path>`` from the define section:

    define:
      brand: {color: "#ff0", font: {family: Inter}}
      title: {color: define.brand.color}
    ...
    style: define.title        ->  {color: "#ff0"}

Define values may reference other define entries. A reference chain that loops
(``a -> b -> a``) is rejected with the full chain in the message.
"""

from .common import index_path, key_path
from .errors import CircularReferenceError, DefineReferenceError


PREFIX = "define."


def is_reference(value) -> bool:
    return isinstance(value, str) and value.startswith(PREFIX)


class DefineResolver:
    """Resolve ``define.<path>`` references against one define section.

    The in-progress stack holds full reference paths (``define.a.b``) for the
    current chain only. It is popped whether a reference succeeds or fails,
    so two sibling references to the same key are fine.
    """

    def __init__(self, defines: dict | None = None):
        self.defines = dict(defines or {})
        self._stack: list[str] = []

    def resolve(self, value, location: str = ""):
        """Return a deep copy of *value* with every reference replaced."""
        if isinstance(value, str):
            return self._resolve_reference(value, location) if is_reference(value) else value
        if isinstance(value, dict):
            return {k: self.resolve(v, key_path(location, k)) for k, v in value.items()}
        if isinstance(value, list):
            return [self.resolve(item, index_path(location, i)) for i, item in enumerate(value)]
        return value

    def resolve_scenario(self, scenario: dict) -> dict:
        """Resolve a whole scenario document, define section included."""
        self._stack.clear()
        return self.resolve(scenario)

    def _resolve_reference(self, reference: str, location: str):
        where = location or "<root>"
        parts = reference[len(PREFIX):].split(".")
        root_key = parts[0]
        if not root_key:
            raise DefineReferenceError(f"Invalid define reference {reference!r} at {where}")
        if root_key not in self.defines:
            raise DefineReferenceError(
                f"Undefined define key {root_key!r} referenced at {where}"
            )

        if reference in self._stack:
            raise CircularReferenceError([*self._stack, reference])

        self._stack.append(reference)
        try:
            resolved = self.resolve(self.defines[root_key], f"{PREFIX}{root_key}")
            for part in parts[1:]:
                resolved = _step(resolved, part, reference, where)
        finally:
            self._stack.pop()

        return resolved

    def available_keys(self) -> list[str]:
        return list(self.defines)

    def key_type(self, key: str) -> str | None:
        """JSON type name of a define entry, or None when undefined."""
        if key not in self.defines:
            return None
        value = self.defines[key]
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "boolean"
        if isinstance(value, (int, float)):
            return "number"
        if isinstance(value, str):
            return "string"
        if isinstance(value, list):
            return "array"
        return "object"


def _step(value, part: str, reference: str, where: str):
    """Descend one path segment; lists accept integer segments."""
    if not part:
        raise DefineReferenceError(f"Invalid define reference {reference!r} at {where}")
    if isinstance(value, dict):
        if part not in value:
            raise DefineReferenceError(
                f"Property {part!r} not found in define {reference!r} at {where}"
            )
        return value[part]
    if isinstance(value, list):
        if not part.isdigit() or int(part) >= len(value):
            raise DefineReferenceError(
                f"Index {part!r} out of range in define {reference!r} at {where}"
            )
        return value[int(part)]
    raise DefineReferenceError(
        f"Cannot access {part!r} on non-object {type(value).__name__} "
        f"in define {reference!r} at {where}"
    )


def resolve_defines(scenario: dict) -> dict:
    """Resolve every define reference in a raw scenario document.

    Raises:
        DefineReferenceError: Malformed or undefined reference.
        CircularReferenceError: A reference chain loops.
    """
    defines = scenario.get("define") or {}
    if not isinstance(defines, dict):
        raise DefineReferenceError("'define' must be a mapping")
    return DefineResolver(defines).resolve_scenario(scenario)
