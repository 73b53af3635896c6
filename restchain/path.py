"""Path evaluation into structured response bodies.

Paths are dot separated segments:
- "hits.total" -> body["hits"]["total"]
- "hits.hits.0._id" -> body["hits"]["hits"][0]["_id"]
- "nodes.$node_id.name" -> segment resolved from the stash first
- "settings.index\\.number_of_shards" -> a literal dot inside a key
"""

from typing import TYPE_CHECKING, Any, List, Optional

from .errors import PathNotFoundError

if TYPE_CHECKING:
    from .stash import Stash


def parse_path(path: str) -> List[str]:
    """Split a path into segments, honouring backslash-escaped dots.

    Examples:
    - "a.b" -> ["a", "b"]
    - "a\\.b.c" -> ["a.b", "c"]
    - "" -> []
    """
    parts: List[str] = []
    current = ""
    i = 0

    while i < len(path):
        char = path[i]

        if char == "\\" and i + 1 < len(path) and path[i + 1] == ".":
            current += "."
            i += 2
        elif char == ".":
            parts.append(current)
            current = ""
            i += 1
        else:
            current += char
            i += 1

    if current or parts:
        parts.append(current)

    return parts


def _step(current: Any, segment: str, path: str) -> Any:
    if isinstance(current, dict):
        if segment not in current:
            raise PathNotFoundError(path, segment)
        return current[segment]

    if isinstance(current, list):
        try:
            idx = int(segment)
        except ValueError:
            raise PathNotFoundError(path, segment) from None
        if not 0 <= idx < len(current):
            raise PathNotFoundError(path, segment)
        return current[idx]

    raise PathNotFoundError(path, segment)


def evaluate(body: Any, path: str, stash: Optional["Stash"] = None) -> Any:
    """Extract the value at path from body.

    Args:
        body: The structured body (dict, list or scalar)
        path: Dot separated path, empty for the whole body
        stash: Optional stash used to resolve segments that are references

    Returns:
        The value found at path

    Raises:
        PathNotFoundError: If any segment does not exist
        UndefinedVariableError: If a segment refers to an unknown stash key
    """
    current = body
    for segment in parse_path(path):
        if stash is not None and stash.is_reference(segment):
            segment = str(stash.get(segment))
        current = _step(current, segment, path)
    return current
