"""Feature models.

A Feature is a named, versioned descriptor aggregating bundle references,
extensions and configuration. It may point to a prototype it inherits from.

This module contains:
- Artifact: one bundle/module reference with start order and metadata
- Extensions: tagged content variants (artifact list, structured value, text)
- Prototype: base feature reference with removal lists
- Feature: the descriptor itself
"""

from enum import Enum
from typing import Annotated, Any, Iterator, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .identity import Identity


# =============================================================================
# Artifacts
# =============================================================================


class Artifact(BaseModel):
    """A reference to a bundle or other artifact inside a feature."""

    id: Identity
    start_order: int | None = Field(default=None, alias="start-order")
    metadata: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("id", mode="before")
    @classmethod
    def _parse_id(cls, value: Any) -> Any:
        if isinstance(value, str):
            return Identity.parse(value)
        return value


# =============================================================================
# Extensions
# =============================================================================


class ExtensionKind(str, Enum):
    ARTIFACTS = "artifacts"
    JSON = "json"
    TEXT = "text"


class ExtensionState(str, Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"


class ArtifactListContent(BaseModel):
    kind: Literal["artifacts"] = "artifacts"
    artifacts: list[Artifact] = Field(default_factory=list)


class StructuredContent(BaseModel):
    kind: Literal["json"] = "json"
    value: Any = None


class TextContent(BaseModel):
    kind: Literal["text"] = "text"
    text: str = ""


ExtensionContent = Annotated[
    ArtifactListContent | StructuredContent | TextContent,
    Field(discriminator="kind"),
]


class Extension(BaseModel):
    """Named extension of a feature.

    Content is a tagged variant selected by ``content.kind``; use the
    ``artifacts``, ``value`` and ``text`` accessors rather than inspecting
    the variant directly.
    """

    name: str = Field(min_length=1)
    state: ExtensionState = ExtensionState.OPTIONAL
    content: ExtensionContent

    @property
    def kind(self) -> ExtensionKind:
        return ExtensionKind(self.content.kind)

    @property
    def artifacts(self) -> list[Artifact]:
        if not isinstance(self.content, ArtifactListContent):
            raise TypeError(f"Extension {self.name!r} is {self.kind.value}, not artifacts")
        return self.content.artifacts

    @property
    def value(self) -> Any:
        if not isinstance(self.content, StructuredContent):
            raise TypeError(f"Extension {self.name!r} is {self.kind.value}, not json")
        return self.content.value

    @property
    def text(self) -> str:
        if not isinstance(self.content, TextContent):
            raise TypeError(f"Extension {self.name!r} is {self.kind.value}, not text")
        return self.content.text

    @classmethod
    def of_artifacts(
        cls,
        name: str,
        artifacts: list[Artifact],
        state: ExtensionState = ExtensionState.OPTIONAL,
    ) -> "Extension":
        return cls(name=name, state=state, content=ArtifactListContent(artifacts=artifacts))

    @classmethod
    def of_value(
        cls, name: str, value: Any, state: ExtensionState = ExtensionState.OPTIONAL
    ) -> "Extension":
        return cls(name=name, state=state, content=StructuredContent(value=value))

    @classmethod
    def of_text(
        cls, name: str, text: str, state: ExtensionState = ExtensionState.OPTIONAL
    ) -> "Extension":
        return cls(name=name, state=state, content=TextContent(text=text))


# =============================================================================
# Prototype
# =============================================================================


class Prototype(BaseModel):
    """Reference to the feature this one inherits from."""

    id: Identity
    removed_bundles: list[Identity] = Field(default_factory=list)
    removed_extensions: list[str] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _parse_id(cls, value: Any) -> Any:
        if isinstance(value, str):
            return Identity.parse(value)
        return value

    @field_validator("removed_bundles", mode="before")
    @classmethod
    def _parse_removed(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [Identity.parse(v) if isinstance(v, str) else v for v in value]
        return value


# =============================================================================
# Feature
# =============================================================================


class Feature(BaseModel):
    """A feature descriptor.

    ``assembled`` marks a terminal feature: once set, the feature has been
    merged with everything it references and must never be merged again.
    """

    id: Identity
    title: str | None = None
    description: str | None = None
    vendor: str | None = None
    license: str | None = None
    bundles: list[Artifact] = Field(default_factory=list)
    extensions: list[Extension] = Field(default_factory=list)
    variables: dict[str, str] = Field(default_factory=dict)
    framework_properties: dict[str, str] = Field(
        default_factory=dict, alias="framework-properties"
    )
    prototype: Prototype | None = None
    assembled: bool = False

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("id", mode="before")
    @classmethod
    def _parse_id(cls, value: Any) -> Any:
        if isinstance(value, str):
            return Identity.parse(value)
        return value

    @model_validator(mode="after")
    def _check_unique_members(self) -> "Feature":
        seen_ids: set[Identity] = set()
        for bundle in self.bundles:
            if bundle.id in seen_ids:
                raise ValueError(f"Duplicate bundle {bundle.id} in feature {self.id}")
            seen_ids.add(bundle.id)
        seen_names: set[str] = set()
        for ext in self.extensions:
            if ext.name in seen_names:
                raise ValueError(f"Duplicate extension {ext.name!r} in feature {self.id}")
            seen_names.add(ext.name)
        return self

    @property
    def classifier(self) -> str | None:
        return self.id.classifier

    def get_extension(self, name: str) -> Extension | None:
        for ext in self.extensions:
            if ext.name == name:
                return ext
        return None

    def get_bundle(self, id: Identity) -> Artifact | None:
        for bundle in self.bundles:
            if bundle.id == id:
                return bundle
        return None

    def artifact_references(self) -> Iterator[Identity]:
        """Yield ids of all bundles and artifact-list extension entries."""
        for bundle in self.bundles:
            yield bundle.id
        for ext in self.extensions:
            if ext.kind == ExtensionKind.ARTIFACTS:
                for artifact in ext.artifacts:
                    yield artifact.id

    def copy_for_assembly(self) -> "Feature":
        """Deep copy, so a merge never mutates its base."""
        return self.model_copy(deep=True)
