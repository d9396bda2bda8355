"""Top-level ST-Bridge document model.

Mirrors the parts of an ST-Bridge file the validator inspects: nodes,
stories, parallel axes, structural members and cross-sections. Values that
validation has to be able to reject (coordinates, heights, distances,
dimensions) are kept as the raw attribute text.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from stb_validator.models.elements import ElementKind, StbMember, StbObject

ROOT_TAG = "ST_BRIDGE"
REQUIRED_GROUPS = ("StbCommon", "StbModel")

# Maps STB attribute names to model field names where they differ
COORDINATE_FIELDS = {"X": "x", "Y": "y", "Z": "z"}


class StbNode(StbObject):
    """A model node (StbNode). Coordinates in millimeters, raw text."""

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    x: str | None = Field(default=None, alias="X")
    y: str | None = Field(default=None, alias="Y")
    z: str | None = Field(default=None, alias="Z")
    extra: dict[str, str] = Field(default_factory=dict)

    def get_attribute(self, name: str) -> str | None:
        if name in COORDINATE_FIELDS:
            return getattr(self, COORDINATE_FIELDS[name])
        if name == "id":
            return self.id
        return self.extra.get(name)

    def set_attribute(self, name: str, value: str | None) -> None:
        if name in COORDINATE_FIELDS:
            setattr(self, COORDINATE_FIELDS[name], value)
        elif name == "id":
            self.id = value
        elif value is None:
            self.extra.pop(name, None)
        else:
            self.extra[name] = value


class StbStory(StbObject):
    """A story level (StbStory). Height is the absolute level in mm."""

    id: str | None = None
    name: str | None = None
    height: str | None = None
    kind: str = "GENERAL"
    extra: dict[str, str] = Field(default_factory=dict)


class StbAxis(StbObject):
    """One grid line (StbParallelAxis) at a distance from its group origin."""

    id: str | None = None
    name: str | None = None
    distance: str | None = None
    extra: dict[str, str] = Field(default_factory=dict)


class StbAxisGroup(StbObject):
    """A group of parallel axes (StbParallelAxes).

    group_name "X" / "Y" (or a name ending in "_X" / "_Y") decides which
    axis direction the group belongs to.
    """

    group_name: str = ""
    axes: list[StbAxis] = Field(default_factory=list)
    extra: dict[str, str] = Field(default_factory=dict)

    @property
    def direction(self) -> str | None:
        """Axis direction "X" or "Y", None when the name carries no direction."""
        if self.group_name == "X" or self.group_name.endswith("_X"):
            return "X"
        if self.group_name == "Y" or self.group_name.endswith("_Y"):
            return "Y"
        return None


class StbSection(StbObject):
    """A cross-section definition, opaque beyond its shape and dimensions.

    ``tag`` is the STB container element (e.g. StbSecColumn_RC), ``kind``
    the member kind it serves, ``section_type`` the normalized shape key
    (RECTANGLE, CIRCLE, H, BOX, PIPE, ...).

    ``figure`` is the element the dimensions were read from. For steel
    sections it is the element carrying the ``shape`` reference, and
    ``shape_tag`` the StbSecSteel entry (e.g. StbSecRoll-H) that holds the
    dimensions.
    """

    id: str | None = None
    tag: str
    kind: ElementKind
    name: str | None = None
    section_type: str | None = None
    dimensions: dict[str, str] = Field(default_factory=dict)
    figure: str | None = None
    shape: str | None = None
    shape_tag: str | None = None
    extra: dict[str, str] = Field(default_factory=dict)


class StbDocument(BaseModel):
    """An ST-Bridge structural model.

    ``groups`` lists the top-level groups present in the source file
    (StbCommon, StbModel, ...). ``root`` is the document element tag.

    A document parsed from XML keeps the source text so the writer can
    carry everything the model does not cover into the exported file.
    JSON snapshots do not keep it.
    """

    _source: bytes | str | None = PrivateAttr(default=None)

    root: str | None = ROOT_TAG
    version: str | None = "2.0.2"
    groups: list[str] = Field(default_factory=lambda: list(REQUIRED_GROUPS))
    nodes: list[StbNode] = Field(default_factory=list)
    stories: list[StbStory] = Field(default_factory=list)
    axis_groups: list[StbAxisGroup] = Field(default_factory=list)
    members: list[StbMember] = Field(default_factory=list)
    sections: list[StbSection] = Field(default_factory=list)
    extra: dict[str, str] = Field(default_factory=dict)

    # ── File I/O ──────────────────────────────────────────────────────

    @classmethod
    def load(cls, path: str | Path) -> StbDocument:
        """Load a document snapshot from a JSON file."""
        path = Path(path)
        return cls.model_validate_json(path.read_text(encoding="utf-8"))

    def save(self, path: str | Path) -> Path:
        """Save the document as JSON. Creates parent dirs if needed."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2, by_alias=True), encoding="utf-8")
        return path

    @property
    def source(self) -> bytes | str | None:
        """The XML this document was parsed from, if any."""
        return self._source

    # ── Lookups ───────────────────────────────────────────────────────

    def members_of(self, kind: ElementKind) -> list[StbMember]:
        """All members of one kind, in document order."""
        return [m for m in self.members if m.kind == kind]

    def find_member(self, tag: str, member_id: str) -> StbMember | None:
        """First member with the given STB tag and id."""
        return next(
            (m for m in self.members if m.tag == tag and m.id == member_id), None
        )

    def find_node(self, node_id: str) -> StbNode | None:
        """First node with the given id."""
        return next((n for n in self.nodes if n.id == node_id), None)

    def find_story(self, story_id: str) -> StbStory | None:
        return next((s for s in self.stories if s.id == story_id), None)

    def find_section(self, tag: str, section_id: str) -> StbSection | None:
        return next(
            (s for s in self.sections if s.tag == tag and s.id == section_id), None
        )

    # ── Mutations (used by repair) ────────────────────────────────────

    def remove_member(self, member: StbMember) -> None:
        """Remove a member by identity."""
        for i, m in enumerate(self.members):
            if m is member:
                del self.members[i]
                return
        raise ValueError(f"{member.tag} '{member.id}' is not part of this document")

    def remove_story(self, story: StbStory) -> None:
        """Remove a story by identity."""
        for i, s in enumerate(self.stories):
            if s is story:
                del self.stories[i]
                return
        raise ValueError(f"Story '{story.id}' is not part of this document")

    # ── Queries ───────────────────────────────────────────────────────

    def iter_objects(self) -> Iterator[StbObject]:
        """Every node, story, axis group, axis, member and section, in document order."""
        yield from self.nodes
        yield from self.stories
        for group in self.axis_groups:
            yield group
            yield from group.axes
        yield from self.members
        yield from self.sections

    def summary(self) -> str:
        """Human-readable one-line summary."""
        return (
            f"{self.root or '?'} v{self.version or '?'}: "
            f"{len(self.nodes)} nodes, {len(self.members)} members, "
            f"{len(self.sections)} sections, {len(self.stories)} stories"
        )
