"""Read-only accessors over an ST-Bridge document.

These turn the raw attribute text of a document into the parsed views the
validation passes consume: a node coordinate map, sorted stories, X/Y axis
groups, members by kind and sections by kind. ``ModelSnapshot`` captures
all of them once per validation run so every pass sees the same data.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterator, Mapping

from stb_validator.models.document import StbAxis, StbAxisGroup, StbDocument, StbSection, StbStory
from stb_validator.models.elements import ELEMENT_KINDS, ElementKind, StbMember
from stb_validator.models.geometry import Point3D

logger = logging.getLogger(__name__)


def parse_number(raw: str | None) -> float | None:
    """Parse an attribute value as a float.

    Returns None for missing, blank, non-numeric and NaN values. Infinite
    values are returned as-is so callers can tell them apart.
    """
    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    if math.isnan(value):
        return None
    return value


def build_node_map(document: StbDocument) -> dict[str, Point3D]:
    """Map node id → coordinates for every node with finite coordinates.

    Nodes without an id or with an unusable coordinate are left out. When
    an id appears more than once, the first occurrence wins.
    """
    node_map: dict[str, Point3D] = {}
    for node in document.nodes:
        if not node.id or node.id in node_map:
            continue
        coords = [parse_number(v) for v in (node.x, node.y, node.z)]
        if any(c is None or math.isinf(c) for c in coords):
            logger.debug("Node %s left out of node map: X=%r Y=%r Z=%r", node.id, node.x, node.y, node.z)
            continue
        x, y, z = coords
        node_map[node.id] = Point3D(x=x, y=y, z=z)
    return node_map


@dataclass(frozen=True)
class StoryRecord:
    """A story with its height parsed."""

    id: str | None
    name: str | None
    height: float
    kind: str = "GENERAL"


def stories_by_height(document: StbDocument) -> list[tuple[float, StbStory]]:
    """(height, story) pairs for stories with a numeric height, stable-sorted by height."""
    pairs = []
    for story in document.stories:
        height = parse_number(story.height)
        if height is not None:
            pairs.append((height, story))
    return sorted(pairs, key=lambda pair: pair[0])


def parse_stories(document: StbDocument) -> list[StoryRecord]:
    """Stories with a numeric height, sorted by height (stable)."""
    return [
        StoryRecord(id=story.id, name=story.name, height=height, kind=story.kind)
        for height, story in stories_by_height(document)
    ]


@dataclass(frozen=True)
class AxisRecord:
    """A grid line with its distance parsed."""

    id: str
    name: str | None
    distance: float
    group_name: str


@dataclass(frozen=True)
class AxisSet:
    """Parallel axes split by direction."""

    x_axes: tuple[AxisRecord, ...] = ()
    y_axes: tuple[AxisRecord, ...] = ()


def iter_axes(document: StbDocument) -> Iterator[tuple[str, StbAxisGroup, StbAxis, AxisRecord]]:
    """Yield (direction, group, axis, record) for every usable axis in document order.

    Axes without an id get ``<group_name>_<index>``. Axes whose distance
    is not a number and groups without a direction are skipped.
    """
    for group in document.axis_groups:
        direction = group.direction
        if direction is None:
            continue
        for index, axis in enumerate(group.axes):
            distance = parse_number(axis.distance)
            if distance is None:
                continue
            record = AxisRecord(
                id=axis.id or f"{group.group_name}_{index}",
                name=axis.name,
                distance=distance,
                group_name=group.group_name,
            )
            yield direction, group, axis, record


def parse_axes(document: StbDocument) -> AxisSet:
    """Collect X and Y axes from every StbParallelAxes group."""
    x_axes: list[AxisRecord] = []
    y_axes: list[AxisRecord] = []
    for direction, _group, _axis, record in iter_axes(document):
        (x_axes if direction == "X" else y_axes).append(record)
    return AxisSet(x_axes=tuple(x_axes), y_axes=tuple(y_axes))


def parse_elements(document: StbDocument, kind: ElementKind) -> list[StbMember]:
    """Members of one kind, in document order."""
    return document.members_of(kind)


def extract_all_sections(document: StbDocument) -> dict[ElementKind, dict[str, StbSection]]:
    """Sections grouped by the member kind they serve, keyed by id.

    Sections without an id are skipped; the first definition of an id wins.
    """
    sections: dict[ElementKind, dict[str, StbSection]] = {}
    for section in document.sections:
        if not section.id:
            continue
        by_id = sections.setdefault(section.kind, {})
        by_id.setdefault(section.id, section)
    return sections


def collect_section_ids(document: StbDocument) -> frozenset[str]:
    """Every section id defined anywhere in the document."""
    return frozenset(s.id for s in document.sections if s.id)


@dataclass(frozen=True)
class ModelSnapshot:
    """Accessor results for one document, built once per validation run."""

    document: StbDocument
    node_ids: frozenset[str]
    node_map: Mapping[str, Point3D]
    stories: tuple[StoryRecord, ...]
    axes: AxisSet
    elements: Mapping[ElementKind, tuple[StbMember, ...]]
    section_ids: frozenset[str]

    @classmethod
    def build(cls, document: StbDocument) -> ModelSnapshot:
        elements = {kind: tuple(parse_elements(document, kind)) for kind in ELEMENT_KINDS}
        return cls(
            document=document,
            node_ids=frozenset(n.id for n in document.nodes if n.id),
            node_map=MappingProxyType(build_node_map(document)),
            stories=tuple(parse_stories(document)),
            axes=parse_axes(document),
            elements=MappingProxyType(elements),
            section_ids=collect_section_ids(document),
        )
