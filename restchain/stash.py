"""Variable store for values captured from previous responses."""

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .errors import UndefinedVariableError

SIGIL = "$"

# Names that a reference can point to
_NAME_PATTERN = re.compile(r"[A-Za-z_]\w*")
# Pattern matches a whole-string reference like $doc_id
_FULL_PATTERN = re.compile(r"^\$([A-Za-z_]\w*)$")
# Pattern matches ${name} placeholders embedded in a larger string
_INTERPOLATION_PATTERN = re.compile(r"\$\{([A-Za-z_]\w*)\}")


class ReferenceKind(Enum):
    """How a reference token is substituted."""

    FULL = "full"  # $name, replaced by the stashed value itself
    INTERPOLATED = "interpolated"  # text with ${name}, replaced inside the string


@dataclass(frozen=True)
class Reference:
    """A parsed reference token."""

    kind: ReferenceKind
    names: Tuple[str, ...]
    token: str


def parse_reference(token: Any) -> Optional[Reference]:
    """Classify a value as a reference token.

    Args:
        token: Any structured value

    Returns:
        A Reference for strings that point into the stash, None otherwise
    """
    if not isinstance(token, str):
        return None

    match = _FULL_PATTERN.match(token)
    if match:
        return Reference(ReferenceKind.FULL, (match.group(1),), token)

    names = tuple(_INTERPOLATION_PATTERN.findall(token))
    if names:
        return Reference(ReferenceKind.INTERPOLATED, names, token)

    return None


def stringify(value: Any) -> str:
    """Render a stashed value as text.

    Dicts and lists are serialized as JSON, booleans use JSON spelling.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    if value is None:
        return "null"
    return str(value)


class Stash:
    """Holds named values that later calls can refer to.

    A value of the form ``$name`` is replaced by the stashed value as a
    whole (keeping its type). A string containing ``${name}`` has each
    placeholder replaced by the text of the stashed value.
    """

    def __init__(self) -> None:
        self._values: Dict[str, Any] = {}

    def set(self, name: str, value: Any) -> None:
        """Stash a value, overwriting any previous value with the same name.

        Raises:
            ValueError: If the name could never be referenced as $name
        """
        if name.startswith(SIGIL):
            name = name[len(SIGIL):]
        if not _NAME_PATTERN.fullmatch(name):
            raise ValueError(
                f"Invalid stash name {name!r}: use letters, digits and underscores"
            )
        self._values[name] = value

    def is_reference(self, token: Any) -> bool:
        """Return True if the token refers to stashed values."""
        return parse_reference(token) is not None

    def get(self, token: str) -> Any:
        """Look up a reference token.

        Args:
            token: ``$name`` or a string containing ``${name}`` placeholders

        Returns:
            The stashed value for a full reference, or the interpolated string

        Raises:
            UndefinedVariableError: If any referenced name was never stashed
            ValueError: If the token is not a reference at all
        """
        ref = parse_reference(token)
        if ref is None:
            raise ValueError(f"Not a stash reference: {token!r}")

        if ref.kind is ReferenceKind.FULL:
            return self._lookup(ref.names[0])

        def replace_match(match: "re.Match[str]") -> str:
            return stringify(self._lookup(match.group(1)))

        return _INTERPOLATION_PATTERN.sub(replace_match, token)

    def _lookup(self, name: str) -> Any:
        if name not in self._values:
            raise UndefinedVariableError(name)
        return self._values[name]

    def resolve(self, value: Any) -> Any:
        """Replace every reference found in a structured value.

        Walks dicts, lists and tuples at any depth. Only values are
        substituted, never dict keys. The input is not modified.
        """
        if isinstance(value, dict):
            return {key: self.resolve(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self.resolve(item) for item in value]
        if isinstance(value, tuple):
            return tuple(self.resolve(item) for item in value)
        if self.is_reference(value):
            return self.get(value)
        return value

    def clear(self) -> None:
        """Remove all stashed values."""
        self._values.clear()

    def as_dict(self) -> Dict[str, Any]:
        """Return a shallow copy of the stashed values."""
        return dict(self._values)

    def __contains__(self, name: object) -> bool:
        if isinstance(name, str) and name.startswith(SIGIL):
            name = name[len(SIGIL):]
        return name in self._values

    def __len__(self) -> int:
        return len(self._values)
