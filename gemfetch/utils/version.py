"""Gem-style version and requirement utilities."""

import re
from dataclasses import dataclass, field
from functools import total_ordering


class RequirementError(ValueError):
    """Error raised when a requirement string cannot be parsed."""

    pass


@total_ordering
@dataclass(eq=False)
class GemVersion:
    """Gem version representation.

    Versions are compared segment by segment. Numeric segments compare as
    integers, alphabetic segments mark a prerelease and sort before any
    numeric segment in the same position. Missing trailing segments count
    as zero, so "1.0" == "1".
    """

    version: str
    segments: list[int | str] = field(init=False, repr=False)

    _VERSION_PATTERN = re.compile(
        r"^[0-9]+(?:\.[0-9a-zA-Z]+)*(?:-[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*)?$"
    )
    _SEGMENT_PATTERN = re.compile(r"[0-9]+|[a-zA-Z]+")

    def __post_init__(self) -> None:
        self.version = str(self.version).strip() or "0"
        if not self._VERSION_PATTERN.match(self.version):
            raise ValueError(f"Malformed version number string {self.version}")

        normalized = self.version.replace("-", ".pre.")
        self.segments = [
            int(seg) if seg.isdigit() else seg
            for seg in self._SEGMENT_PATTERN.findall(normalized)
        ]

    @classmethod
    def parse(cls, version_str: "str | GemVersion") -> "GemVersion":
        """Parse a version string.

        Args:
            version_str: Version string (e.g., "1.2.3", "2.0.0.beta1") or GemVersion

        Returns:
            GemVersion instance

        Raises:
            ValueError: If the string is not a valid version
        """
        if isinstance(version_str, GemVersion):
            return version_str
        return cls(version_str)

    @property
    def prerelease(self) -> bool:
        """Whether any segment is alphabetic."""
        return any(isinstance(seg, str) for seg in self.segments)

    def release(self) -> "GemVersion":
        """Get the release version (prerelease segments dropped)."""
        if not self.prerelease:
            return self
        numeric: list[str] = []
        for seg in self.segments:
            if isinstance(seg, str):
                break
            numeric.append(str(seg))
        return GemVersion(".".join(numeric) or "0")

    def bump(self) -> "GemVersion":
        """Get the next significant release ("2.1.3" -> "2.2", "2" -> "3")."""
        numeric = [int(s) for s in self.release().segments]
        if len(numeric) > 1:
            numeric.pop()
        numeric[-1] += 1
        return GemVersion(".".join(str(s) for s in numeric))

    def _canonical(self) -> tuple[int | str, ...]:
        segments = list(self.segments)
        while len(segments) > 1 and segments[-1] == 0:
            segments.pop()
        return tuple(segments)

    def _compare(self, other: "GemVersion") -> int:
        """Compare two versions, returning -1, 0 or 1."""
        left, right = self.segments, other.segments
        for i in range(max(len(left), len(right))):
            lhs = left[i] if i < len(left) else 0
            rhs = right[i] if i < len(right) else 0
            if lhs == rhs:
                continue
            # Alphabetic segments sort before numeric ones
            if isinstance(lhs, str) and isinstance(rhs, int):
                return -1
            if isinstance(lhs, int) and isinstance(rhs, str):
                return 1
            return -1 if lhs < rhs else 1  # type: ignore[operator]
        return 0

    def __str__(self) -> str:
        return self.version

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GemVersion):
            return NotImplemented
        return self._compare(other) == 0

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, GemVersion):
            return NotImplemented
        return self._compare(other) < 0

    def __hash__(self) -> int:
        return hash(self._canonical())


class Requirement:
    """A set of version constraints that must all hold.

    Constraints use the gem operators "=", "!=", ">", "<", ">=", "<=" and the
    pessimistic "~>" ("~> 2.1" means ">= 2.1, < 3.0").
    """

    OPERATORS = ("=", "!=", ">=", "<=", "~>", ">", "<")

    _CONSTRAINT_PATTERN = re.compile(
        r"^\s*(?P<op>=|!=|>=|<=|~>|>|<)?\s*"
        r"(?P<version>[0-9]+(?:\.[0-9a-zA-Z]+)*(?:-[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*)?)\s*$"
    )

    def __init__(self, constraints: str | list[str] | None = None):
        """Initialize a requirement.

        Args:
            constraints: A constraint string or list of them (e.g., ["~> 1.2", "!= 1.2.5"]).
                Empty means any version.

        Raises:
            RequirementError: If a constraint is ill-formed
        """
        if constraints is None:
            constraints = []
        elif isinstance(constraints, str):
            constraints = [constraints]

        self._constraints = [self._parse_constraint(c) for c in constraints if c.strip()]
        if not self._constraints:
            self._constraints = [(">=", GemVersion("0"))]

    @classmethod
    def _parse_constraint(cls, constraint: str) -> tuple[str, GemVersion]:
        match = cls._CONSTRAINT_PATTERN.match(constraint)
        if not match:
            raise RequirementError(f'Ill-formed requirement ["{constraint}"]')
        return match.group("op") or "=", GemVersion(match.group("version"))

    @property
    def constraints(self) -> list[tuple[str, GemVersion]]:
        """Get the parsed (operator, version) pairs."""
        return list(self._constraints)

    def satisfied_by(self, version: GemVersion | str) -> bool:
        """Check if a version satisfies every constraint.

        Args:
            version: Version to check

        Returns:
            True if the version satisfies the requirement
        """
        version = GemVersion.parse(version)

        for op, constraint in self._constraints:
            if op == "=" and version != constraint:
                return False
            if op == "!=" and version == constraint:
                return False
            if op == ">" and version <= constraint:
                return False
            if op == "<" and version >= constraint:
                return False
            if op == ">=" and version < constraint:
                return False
            if op == "<=" and version > constraint:
                return False
            if op == "~>" and not (constraint <= version < constraint.bump()):
                return False

        return True

    def __str__(self) -> str:
        return ", ".join(f"{op} {version}" for op, version in self._constraints)

    def __repr__(self) -> str:
        return f"Requirement({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Requirement):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def _key(self) -> tuple[tuple[str, str], ...]:
        return tuple(sorted((op, str(version)) for op, version in self._constraints))
