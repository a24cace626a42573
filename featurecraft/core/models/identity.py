"""Artifact coordinates.

An Identity names an artifact or a feature inside a build graph or an
external repository. The textual form follows the usual coordinate syntax:

    group:name:version
    group:name:type:version
    group:name:type:classifier:version
"""

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_TYPE = "jar"

# Type used for feature descriptors
FEATURE_TYPE = "feature"


class Identity(BaseModel):
    """Immutable coordinate: (group, name, version, classifier, type)."""

    model_config = ConfigDict(frozen=True)

    group: str = Field(min_length=1)
    name: str = Field(min_length=1)
    version: str = Field(min_length=1)
    classifier: str | None = None
    type: str = DEFAULT_TYPE

    @property
    def module_key(self) -> str:
        """Key of the logical module owning this identity ("group:name")."""
        return f"{self.group}:{self.name}"

    def _sort_key(self) -> tuple[str, str, str, str, str]:
        return (self.group, self.name, self.version, self.type, self.classifier or "")

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Identity):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Identity):
            return NotImplemented
        return self._sort_key() <= other._sort_key()

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Identity):
            return NotImplemented
        return self._sort_key() > other._sort_key()

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Identity):
            return NotImplemented
        return self._sort_key() >= other._sort_key()

    def __str__(self) -> str:
        return self.to_coordinate()

    def same_module_version(self, other: "Identity") -> bool:
        """True when group, name and version match (classifier/type ignored)."""
        return (
            self.group == other.group
            and self.name == other.name
            and self.version == other.version
        )

    def with_classifier(self, classifier: str | None) -> "Identity":
        return self.model_copy(update={"classifier": classifier})

    def with_type(self, type_: str) -> "Identity":
        return self.model_copy(update={"type": type_})

    def to_coordinate(self) -> str:
        """Format as ``group:name[:type[:classifier]]:version``."""
        parts = [self.group, self.name]
        if self.classifier:
            parts.extend([self.type, self.classifier])
        elif self.type != DEFAULT_TYPE:
            parts.append(self.type)
        parts.append(self.version)
        return ":".join(parts)

    @classmethod
    def parse(cls, text: str) -> "Identity":
        """Parse a coordinate string.

        Examples:
            "org.example:core:1.0" -> type "jar", no classifier
            "org.example:core:feature:1.0" -> type "feature"
            "org.example:core:feature:test:1.0" -> classifier "test"

        Raises:
            ValueError: If the string does not have 3 to 5 non-empty parts.
        """
        parts = text.strip().split(":")
        if len(parts) < 3 or len(parts) > 5 or not all(parts):
            raise ValueError(
                f"Invalid coordinate: {text!r}. "
                "Expected 'group:name[:type[:classifier]]:version'"
            )
        group, name = parts[0], parts[1]
        version = parts[-1]
        type_ = parts[2] if len(parts) >= 4 else DEFAULT_TYPE
        classifier = parts[3] if len(parts) == 5 else None
        return cls(
            group=group, name=name, version=version, classifier=classifier, type=type_
        )
