"""Project and mod version numbers of the form major.minor.patch[suffix]."""

from __future__ import annotations

import re
from dataclasses import dataclass

_U16_MAX = 0xFFFF
_DIGITS = re.compile(r"[0-9]+")


def _parse_component(text: str, start: int, end: int, whole: bool) -> tuple[int, int]:
    """Parse an unsigned 16-bit decimal number at ``text[start:end]``.

    Returns the number and the index just past its digits. When ``whole`` is
    true the digits must fill the range exactly.
    """
    match = _DIGITS.match(text, start, end)
    if match is None:
        raise ValueError(f"expected a number at position {start} in {text!r}")
    value = int(match.group())
    if value > _U16_MAX:
        raise ValueError(f"version component {match.group()} is out of range")
    if whole and match.end() != end:
        raise ValueError(f"unexpected characters in version {text!r}")
    return value, match.end()


@dataclass(frozen=True)
class Version:
    """A version number with an optional suffix starting with ``+`` or ``-``."""

    major: int = 0
    minor: int = 0
    patch: int = 0
    suffix: str = ""

    @classmethod
    def from_string(cls, text: str) -> "Version":
        """Parse ``major.minor.patch`` optionally followed by a ``+`` or ``-`` suffix.

        Raises ValueError when the text is not a valid version.
        """
        first = text.find(".")
        if first < 0:
            raise ValueError(f"version {text!r} needs two periods")
        second = text.find(".", first + 1)
        if second < 0:
            raise ValueError(f"version {text!r} needs two periods")

        major, _ = _parse_component(text, 0, first, whole=True)
        minor, _ = _parse_component(text, first + 1, second, whole=True)
        patch, stop = _parse_component(text, second + 1, len(text), whole=False)

        suffix = ""
        if stop != len(text):
            if text[stop] not in "+-":
                raise ValueError(f"unexpected characters after version number in {text!r}")
            suffix = text[stop:]

        return cls(major, minor, patch, suffix)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}{self.suffix}"