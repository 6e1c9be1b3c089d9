"""Four-part server version values (major.minor.build.revision).

Missing build/revision components are stored as -1, so "9.2" sorts below "9.2.0".
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True, order=True)
class ServerVersion:
    major: int
    minor: int
    build: int = -1
    revision: int = -1

    @classmethod
    def parse(cls, text: str) -> "ServerVersion":
        """Parse '9.2', '9.2.24011' or '9.2.24011.00184'.

        Raises ValueError for anything else.
        """

        parts = (text or "").strip().split(".")
        if not 2 <= len(parts) <= 4:
            raise ValueError(f"Invalid version string: {text!r}")

        numbers: list[int] = []
        for part in parts:
            if not part.isdigit():
                raise ValueError(f"Invalid version string: {text!r}")
            numbers.append(int(part))

        return cls(*numbers)

    def __str__(self) -> str:
        parts = [self.major, self.minor, self.build, self.revision]
        return ".".join(str(p) for p in parts if p >= 0)


def coerce_version(value: "ServerVersion | str") -> ServerVersion:
    if isinstance(value, ServerVersion):
        return value
    return ServerVersion.parse(value)
