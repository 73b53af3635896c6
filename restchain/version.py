"""Service version parsing and comparison."""

import re
from dataclasses import dataclass
from typing import Union

_VERSION_PATTERN = re.compile(r"^\s*v?(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:[-.]?(.+))?\s*$")


@dataclass(frozen=True, order=True)
class Version:
    """A major.minor.patch version.

    Qualifiers such as ``-SNAPSHOT`` or ``-alpha1`` are accepted by parse()
    and dropped.
    """

    major: int
    minor: int = 0
    patch: int = 0

    @classmethod
    def parse(cls, value: Union[str, "Version"]) -> "Version":
        """Parse a version string like '5.2.0' or '6.0.0-SNAPSHOT'.

        Raises:
            ValueError: If the string is not a version
        """
        if isinstance(value, Version):
            return value
        match = _VERSION_PATTERN.match(str(value))
        if not match:
            raise ValueError(f"Invalid version: {value!r}")
        major, minor, patch, _qualifier = match.groups()
        return cls(int(major), int(minor or 0), int(patch or 0))

    def before(self, other: Union[str, "Version"]) -> bool:
        """Return True if this version is strictly older than other."""
        return self < Version.parse(other)

    def on_or_after(self, other: Union[str, "Version"]) -> bool:
        return not self.before(other)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"
