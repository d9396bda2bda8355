"""Structural members and the element kind table.

Every ST-Bridge member kind the validator knows about is described by one
row of ``ELEMENT_KINDS``: its tag name, how it references nodes, which
attributes carry section references, and the longest length that is still
plausible. Validation passes and repair strategies read this table instead
of branching on tag names.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field, PrivateAttr

# Sentinel for "section not set" on StbFoundationColumn section attributes
UNSET_SECTION = "0"


class ElementKind(str, Enum):
    """ST-Bridge member kinds covered by validation."""

    COLUMN = "Column"
    POST = "Post"
    GIRDER = "Girder"
    BEAM = "Beam"
    BRACE = "Brace"
    PILE = "Pile"
    FOOTING = "Footing"
    FOUNDATION_COLUMN = "FoundationColumn"


class NodeLayout(str, Enum):
    """How a member kind references its nodes.

    BOTTOM_TOP: vertical two-node member (id_node_bottom / id_node_top)
    START_END: horizontal or diagonal two-node member (id_node_start / id_node_end)
    SINGLE: one node (id_node)
    PILE: either BOTTOM_TOP, or SINGLE plus level_top
    """

    BOTTOM_TOP = "bottom_top"
    START_END = "start_end"
    SINGLE = "single"
    PILE = "pile"


LAYOUT_ATTRIBUTES: dict[NodeLayout, tuple[str, ...]] = {
    NodeLayout.BOTTOM_TOP: ("id_node_bottom", "id_node_top"),
    NodeLayout.START_END: ("id_node_start", "id_node_end"),
    NodeLayout.SINGLE: ("id_node",),
    NodeLayout.PILE: ("id_node_bottom", "id_node_top", "id_node"),
}


@dataclass(frozen=True)
class ElementKindSpec:
    """One row of the element kind table."""

    kind: ElementKind
    tag: str
    container: str
    layout: NodeLayout
    section_attributes: tuple[str, ...] = ("id_section",)
    max_length: float | None = None  # mm, None = not a two-node member
    unset_section: str | None = None  # section value meaning "not set"

    @property
    def required_section(self) -> str:
        """The section attribute every member of this kind must carry."""
        return self.section_attributes[0]

    @property
    def node_attributes(self) -> tuple[str, ...]:
        return LAYOUT_ATTRIBUTES[self.layout]


ELEMENT_KINDS: dict[ElementKind, ElementKindSpec] = {
    spec.kind: spec
    for spec in (
        ElementKindSpec(ElementKind.COLUMN, "StbColumn", "StbColumns", NodeLayout.BOTTOM_TOP, max_length=50_000),
        ElementKindSpec(ElementKind.POST, "StbPost", "StbPosts", NodeLayout.BOTTOM_TOP, max_length=50_000),
        ElementKindSpec(ElementKind.GIRDER, "StbGirder", "StbGirders", NodeLayout.START_END, max_length=30_000),
        ElementKindSpec(ElementKind.BEAM, "StbBeam", "StbBeams", NodeLayout.START_END, max_length=30_000),
        ElementKindSpec(ElementKind.BRACE, "StbBrace", "StbBraces", NodeLayout.START_END, max_length=30_000),
        ElementKindSpec(ElementKind.PILE, "StbPile", "StbPiles", NodeLayout.PILE, max_length=50_000),
        ElementKindSpec(ElementKind.FOOTING, "StbFooting", "StbFootings", NodeLayout.SINGLE),
        ElementKindSpec(
            ElementKind.FOUNDATION_COLUMN,
            "StbFoundationColumn",
            "StbFoundationColumns",
            NodeLayout.SINGLE,
            section_attributes=("id_section_FD", "id_section_WR"),
            unset_section=UNSET_SECTION,
        ),
    )
}

KIND_BY_TAG: dict[str, ElementKind] = {spec.tag: kind for kind, spec in ELEMENT_KINDS.items()}


class StbObject(BaseModel):
    """Base for models read from a single ST-Bridge element.

    ``_source_key`` is the element's position in document order of the
    parsed file (None for objects built in memory). The XML writer uses it
    to edit that element in place on export.
    """

    _source_key: int | None = PrivateAttr(default=None)


class StbMember(StbObject):
    """A structural member (column, girder, pile, ...).

    Node and section references are kept as the raw attribute strings so
    that missing or dangling references can be reported rather than
    rejected at load time. Attributes the validator does not inspect are
    preserved in ``extra`` for export.
    """

    kind: ElementKind
    id: str | None = None
    name: str | None = None
    id_node_start: str | None = None
    id_node_end: str | None = None
    id_node_bottom: str | None = None
    id_node_top: str | None = None
    id_node: str | None = None
    level_top: str | None = Field(default=None, description="One-node pile top level (mm)")
    id_section: str | None = None
    id_section_FD: str | None = None
    id_section_WR: str | None = None
    extra: dict[str, str] = Field(default_factory=dict)

    @property
    def spec(self) -> ElementKindSpec:
        return ELEMENT_KINDS[self.kind]

    @property
    def tag(self) -> str:
        return self.spec.tag

    def get_attribute(self, name: str) -> str | None:
        """Read an STB attribute by its XML name."""
        if name in type(self).model_fields and name not in ("kind", "extra"):
            return getattr(self, name)
        return self.extra.get(name)

    def set_attribute(self, name: str, value: str | None) -> None:
        """Write an STB attribute by its XML name."""
        if name in type(self).model_fields and name not in ("kind", "extra"):
            setattr(self, name, value)
        elif value is None:
            self.extra.pop(name, None)
        else:
            self.extra[name] = value

    def node_reference_attributes(self) -> tuple[str, ...]:
        """Node attributes that must resolve, by the form the member uses.

        A pile with a bottom node resolves bottom and top; otherwise one
        with ``id_node`` resolves only that.
        """
        if self.spec.layout == NodeLayout.PILE:
            if not self.id_node_bottom and self.id_node:
                return ("id_node",)
            return ("id_node_bottom", "id_node_top")
        return self.spec.node_attributes

    def endpoint_attributes(self) -> tuple[str, str] | None:
        """Attribute names of the two endpoints, or None for one-node forms."""
        layout = self.spec.layout
        if layout == NodeLayout.BOTTOM_TOP:
            return ("id_node_bottom", "id_node_top")
        if layout == NodeLayout.START_END:
            return ("id_node_start", "id_node_end")
        if layout == NodeLayout.PILE and self.id_node_bottom and self.id_node_top:
            return ("id_node_bottom", "id_node_top")
        return None
