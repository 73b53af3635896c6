"""Response model returned by the transport."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional

from . import path as object_path

if TYPE_CHECKING:
    from .stash import Stash

# Path that always yields the whole body
BODY_PATH = "$body"


@dataclass
class ApiResponse:
    """A response obtained from the service under test.

    The same type is used for successful responses and for error
    responses carried by RemoteError.
    """

    status: int
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        """True for 1xx-3xx statuses."""
        return self.status < 400

    def header(self, name: str) -> Optional[str]:
        """Get a header value, matching the name case-insensitively."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    def evaluate(self, path: str, stash: Optional["Stash"] = None) -> Any:
        """Extract a value from the body.

        A path that is itself a stash reference is resolved first, so
        ``$my_path`` with ``my_path == "a.b"`` evaluates ``a.b``.

        Raises:
            PathNotFoundError: If the path does not exist in the body
            UndefinedVariableError: If the path refers to an unknown stash key
        """
        if path == BODY_PATH or path == "":
            return self.body

        if stash is not None and stash.is_reference(path):
            path = str(stash.get(path))

        return object_path.evaluate(self.body, path, stash)
