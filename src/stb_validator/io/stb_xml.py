"""ST-Bridge XML reader and writer.

Only the parts of ST-Bridge the validator inspects are modeled: nodes,
stories, parallel axes, structural members and cross-sections. A parsed
document remembers its source, and the writer applies the model's edits
and removals to a fresh copy of that tree. Documents built in memory are
written from the model alone.

Section dimensions come from the first figure element found inside a
section definition, or from the StbSecSteel shape the section points to
through a ``shape`` attribute.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import TypeVar

from stb_validator.models.document import (
    ROOT_TAG,
    StbAxis,
    StbAxisGroup,
    StbDocument,
    StbNode,
    StbSection,
    StbStory,
)
from stb_validator.models.elements import ELEMENT_KINDS, KIND_BY_TAG, ElementKind, StbMember, StbObject

logger = logging.getLogger(__name__)

STB_NAMESPACE = "https://www.building-smart.or.jp/dl"

# Section container prefix → member kind it serves. Longer prefixes first.
SECTION_KINDS: tuple[tuple[str, ElementKind], ...] = (
    ("StbSecFoundationColumn", ElementKind.FOUNDATION_COLUMN),
    ("StbSecFoundation", ElementKind.FOOTING),
    ("StbSecColumn", ElementKind.COLUMN),
    ("StbSecPost", ElementKind.POST),
    ("StbSecGirder", ElementKind.GIRDER),
    ("StbSecBeam", ElementKind.BEAM),
    ("StbSecBrace", ElementKind.BRACE),
    ("StbSecPile", ElementKind.PILE),
)

# StbSecSteel shape element → section type
STEEL_SHAPE_TYPES = {
    "StbSecRoll-H": "H",
    "StbSecBuild-H": "H",
    "StbSecRoll-BOX": "BOX",
    "StbSecBuild-BOX": "BOX",
    "StbSecPipe": "PIPE",
    "StbSecRoll-C": "C",
    "StbSecRoll-L": "L",
    "StbSecRoll-T": "T",
    "StbSecFlatBar": "FB",
}

# Figure element suffix → section type
FIGURE_TYPES = (
    ("_Rect", "RECTANGLE"),
    ("_Circle", "CIRCLE"),
    ("_Straight", "RECTANGLE"),
    ("_TaperSection", "RECTANGLE"),
    ("_HaunchSection", "RECTANGLE"),
)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'
NON_DIMENSION_ATTRIBUTES = frozenset({"id", "name", "pos", "shape"})
MEMBER_FIELDS = tuple(f for f in StbMember.model_fields if f not in ("kind", "extra"))

_ENCODING_DECLARATION = re.compile(rb"""^\s*<\?xml[^>]*encoding=["']([A-Za-z0-9._-]+)["']""")


class StbLoadError(ValueError):
    """The file is missing, unreadable or not well-formed XML."""


# ── Reading ───────────────────────────────────────────────────────────


def _local(tag: str) -> str:
    """Strip an ElementTree ``{namespace}`` prefix."""
    return tag.rsplit("}", 1)[-1]


def _namespace(tag: str) -> str | None:
    if tag.startswith("{"):
        return tag[1:].split("}", 1)[0]
    return None


def _parse_root(data: bytes | str) -> ET.Element:
    try:
        if isinstance(data, bytes):
            match = _ENCODING_DECLARATION.match(data)
            if match:
                # expat only knows a handful of encodings; decode Shift_JIS etc. ourselves
                data = data.decode(match.group(1).decode("ascii"))
        return ET.fromstring(data)
    except ET.ParseError as e:
        raise StbLoadError(f"Not well-formed XML: {e}") from e
    except (LookupError, UnicodeDecodeError) as e:
        raise StbLoadError(f"Cannot decode document: {e}") from e


def _split(attrib: dict[str, str], known: tuple[str, ...]) -> tuple[dict[str, str], dict[str, str]]:
    fields = {k: v for k, v in attrib.items() if k in known}
    extra = {k: v for k, v in attrib.items() if k not in known}
    return fields, extra


_Tracked = TypeVar("_Tracked", bound=StbObject)


def _track(obj: _Tracked, element: ET.Element, keys: dict[ET.Element, int]) -> _Tracked:
    obj._source_key = keys[element]
    return obj


def _read_node(element: ET.Element) -> StbNode:
    fields, extra = _split(element.attrib, ("id", "X", "Y", "Z"))
    return StbNode(**fields, extra=extra)


def _read_story(element: ET.Element) -> StbStory:
    fields, extra = _split(element.attrib, ("id", "name", "height", "kind"))
    return StbStory(**fields, extra=extra)


def _read_axis_group(element: ET.Element, keys: dict[ET.Element, int]) -> StbAxisGroup:
    fields, extra = _split(element.attrib, ("group_name",))
    axes = []
    for child in element:
        if _local(child.tag) == "StbParallelAxis":
            axis_fields, axis_extra = _split(child.attrib, ("id", "name", "distance"))
            axes.append(_track(StbAxis(**axis_fields, extra=axis_extra), child, keys))
    return StbAxisGroup(**fields, axes=axes, extra=extra)


def _read_member(element: ET.Element, kind: ElementKind) -> StbMember:
    fields, extra = _split(element.attrib, MEMBER_FIELDS)
    return StbMember(kind=kind, **fields, extra=extra)


def _section_kind(tag: str) -> ElementKind | None:
    for prefix, kind in SECTION_KINDS:
        if tag.startswith(prefix):
            return kind
    return None


def _dimensions(attrib: dict[str, str]) -> dict[str, str]:
    return {k: v for k, v in attrib.items() if k not in NON_DIMENSION_ATTRIBUTES}


def _figure_type(tag: str) -> str | None:
    return next((t for suffix, t in FIGURE_TYPES if tag.endswith(suffix)), None)


def _locate_figure(element: ET.Element) -> ET.Element | None:
    """The descendant a section's dimensions hang off.

    The first descendant with a steel ``shape`` reference wins, then the
    first figure element (``*_Rect``, ``*_Circle``, ...).
    """
    descendants = [child for child in element.iter() if child is not element]
    for child in descendants:
        if child.get("shape"):
            return child
    for child in descendants:
        if _figure_type(_local(child.tag)):
            return child
    return None


def _steel_shapes(root: ET.Element) -> dict[str, ET.Element]:
    """StbSecSteel shape elements by name. The first definition wins."""
    shapes: dict[str, ET.Element] = {}
    for element in root.iter():
        if _local(element.tag) == "StbSecSteel":
            for shape in element:
                name = shape.get("name")
                if name:
                    shapes.setdefault(name, shape)
    return shapes


def _read_section(element: ET.Element, kind: ElementKind, steel: dict[str, ET.Element]) -> StbSection:
    fields, extra = _split(element.attrib, ("id", "name"))
    section = StbSection(tag=_local(element.tag), kind=kind, **fields, extra=extra)

    figure = _locate_figure(element)
    if figure is None:
        return section
    section.figure = _local(figure.tag)

    shape = figure.get("shape")
    if shape:
        section.shape = shape
        holder = steel.get(shape)
        if holder is None:
            logger.debug("Section %s references unknown steel shape %r", section.id, shape)
        else:
            section.shape_tag = _local(holder.tag)
            section.section_type = STEEL_SHAPE_TYPES.get(section.shape_tag, section.shape_tag)
            section.dimensions = _dimensions(holder.attrib)
        return section

    dimensions = _dimensions(figure.attrib)
    section_type = _figure_type(section.figure)
    if "D" in dimensions and not any(k in dimensions for k in ("width", "width_X", "B")):
        section_type = "CIRCLE"
    section.section_type = section_type
    section.dimensions = dimensions
    return section


def _read_document(root: ET.Element) -> StbDocument:
    """Build a document from a parsed tree, tagging every object with its source key."""
    root_extra = {k: v for k, v in root.attrib.items() if k != "version"}
    namespace = _namespace(root.tag)
    if namespace:
        root_extra["xmlns"] = namespace

    document = StbDocument(
        root=_local(root.tag),
        version=root.get("version"),
        groups=[_local(child.tag) for child in root],
        extra=root_extra,
    )

    keys = {element: key for key, element in enumerate(root.iter())}
    steel = _steel_shapes(root)

    for element in root.iter():
        tag = _local(element.tag)
        if tag == "StbNode":
            document.nodes.append(_track(_read_node(element), element, keys))
        elif tag == "StbStory":
            document.stories.append(_track(_read_story(element), element, keys))
        elif tag == "StbParallelAxes":
            document.axis_groups.append(_track(_read_axis_group(element, keys), element, keys))
        elif tag in KIND_BY_TAG:
            document.members.append(_track(_read_member(element, KIND_BY_TAG[tag]), element, keys))
        elif tag == "StbSections":
            for child in element:
                kind = _section_kind(_local(child.tag))
                if kind is not None:
                    document.sections.append(_track(_read_section(child, kind, steel), child, keys))

    return document


def parse_stb_xml(data: bytes | str) -> StbDocument:
    """Parse ST-Bridge XML text into a document.

    Raises:
        StbLoadError: The text is not well-formed XML or cannot be decoded.
    """
    document = _read_document(_parse_root(data))
    document._source = data
    logger.debug("Parsed %s", document.summary())
    return document


def load_stb_document(path: str | Path) -> StbDocument:
    """Read and parse an .stb file.

    Raises:
        StbLoadError: The file cannot be read or parsed.
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise StbLoadError(f"Cannot read {path}: {e}") from e
    document = parse_stb_xml(data)
    logger.info("Loaded %s: %s", path.name, document.summary())
    return document


def load_document(path: str | Path) -> StbDocument:
    """Load a document from ST-Bridge XML, or from a JSON snapshot (.json)."""
    path = Path(path)
    if path.suffix.lower() == ".json":
        try:
            return StbDocument.load(path)
        except (OSError, ValueError) as e:
            raise StbLoadError(f"Cannot load {path}: {e}") from e
    return load_stb_document(path)


# ── Writing ───────────────────────────────────────────────────────────


def _attrs(*pairs: tuple[str, str | None], extra: dict[str, str] | None = None) -> dict[str, str]:
    attrib = {k: v for k, v in pairs if v is not None}
    for k, v in (extra or {}).items():
        attrib.setdefault(k, v)
    return attrib


def _sync(
    element: ET.Element,
    attrib: dict[str, str],
    keep: frozenset[str] = frozenset(),
    implicit: dict[str, str] | None = None,
) -> None:
    """Make an element's attributes match ``attrib``.

    Attributes named in ``keep`` are never dropped. An ``implicit`` value
    the element does not spell out stays unwritten. Existing attributes
    keep their order.
    """
    implicit = implicit or {}
    for name in list(element.attrib):
        if name not in attrib and name not in keep:
            del element.attrib[name]
    for name, value in attrib.items():
        if name not in element.attrib and implicit.get(name) == value:
            continue
        element.set(name, value)


def _child(parent: ET.Element, tag: str) -> ET.Element:
    """First child with ``tag``, appended when there is none."""
    found = parent.find(tag)
    if found is None:
        found = ET.SubElement(parent, tag)
    return found


def _root_attrs(document: StbDocument) -> dict[str, str]:
    return _attrs(("version", document.version), extra={"xmlns": STB_NAMESPACE, **document.extra})


def _node_attrs(node: StbNode) -> dict[str, str]:
    return _attrs(("id", node.id), ("X", node.x), ("Y", node.y), ("Z", node.z), extra=node.extra)


def _story_attrs(story: StbStory) -> dict[str, str]:
    return _attrs(
        ("id", story.id), ("name", story.name), ("height", story.height), ("kind", story.kind), extra=story.extra
    )


def _group_attrs(group: StbAxisGroup) -> dict[str, str]:
    return _attrs(("group_name", group.group_name), extra=group.extra)


def _axis_attrs(axis: StbAxis) -> dict[str, str]:
    return _attrs(("id", axis.id), ("name", axis.name), ("distance", axis.distance), extra=axis.extra)


def _member_attrs(member: StbMember) -> dict[str, str]:
    return _attrs(*[(name, getattr(member, name)) for name in MEMBER_FIELDS], extra=member.extra)


def _section_attrs(section: StbSection) -> dict[str, str]:
    return _attrs(("id", section.id), ("name", section.name), extra=section.extra)


class _ModelWriter:
    """Writes a document's objects into an ST-Bridge element tree.

    ``placed`` maps ``id(obj)`` to the element an object was read from.
    Those elements get their attributes synced, so their children and
    everything around them stay as they were. Every other object gets a
    new element in its container under StbModel, created on first use.
    """

    def __init__(self, root: ET.Element, placed: dict[int, ET.Element]):
        self.root = root
        self.placed = placed

    def container(self, *path: str) -> ET.Element:
        parent = _child(self.root, "StbModel")
        for tag in path:
            parent = _child(parent, tag)
        return parent

    def put(
        self,
        obj: StbObject,
        tag: str,
        attrib: dict[str, str],
        path: tuple[str, ...] = (),
        parent: ET.Element | None = None,
        implicit: dict[str, str] | None = None,
    ) -> ET.Element:
        element = self.placed.get(id(obj))
        if element is not None:
            _sync(element, attrib, implicit=implicit)
            return element
        if parent is None:
            parent = self.container(*path)
        return ET.SubElement(parent, tag, attrib)

    def write(self, document: StbDocument) -> None:
        for node in document.nodes:
            self.put(node, "StbNode", _node_attrs(node), ("StbNodes",))

        for group in document.axis_groups:
            group_el = self.put(
                group, "StbParallelAxes", _group_attrs(group), ("StbAxes",), implicit={"group_name": ""}
            )
            for axis in group.axes:
                self.put(axis, "StbParallelAxis", _axis_attrs(axis), parent=group_el)

        for story in document.stories:
            self.put(story, "StbStory", _story_attrs(story), ("StbStories",), implicit={"kind": "GENERAL"})

        for kind, spec in ELEMENT_KINDS.items():
            for member in document.members_of(kind):
                self.put(member, spec.tag, _member_attrs(member), ("StbMembers", spec.container))

        placed_sections = [
            (section, self.put(section, section.tag, _section_attrs(section), ("StbSections",)))
            for section in document.sections
        ]
        steel = _steel_shapes(self.root)
        for section, element in placed_sections:
            self.write_dimensions(section, element, steel)

    def write_dimensions(self, section: StbSection, element: ET.Element, steel: dict[str, ET.Element]) -> None:
        """Put a section's dimensions on its figure, or on the steel shape the figure names."""
        figure = _locate_figure(element)
        if figure is None:
            if section.shape:
                figure = ET.SubElement(element, section.figure or "StbSecFigure", {"shape": section.shape})
            elif section.figure:
                figure = ET.SubElement(element, section.figure)
            else:
                return

        shape = figure.get("shape")
        if not shape:
            _sync(figure, section.dimensions, keep=NON_DIMENSION_ATTRIBUTES)
            return

        holder = steel.get(shape)
        if holder is None:
            if not section.shape_tag:
                return
            holder = ET.SubElement(self.container("StbSections", "StbSecSteel"), section.shape_tag, {"name": shape})
            steel[shape] = holder
        _sync(holder, section.dimensions, keep=NON_DIMENSION_ATTRIBUTES)


def _source_tree(document: StbDocument) -> tuple[ET.Element, dict[int, ET.Element]]:
    """A fresh copy of the document's source tree, and where its objects sit in it.

    Elements whose objects are no longer in the document are removed from
    the copy. Tags lose their namespace; the root declares it again.
    """
    root = _parse_root(document.source)
    original = _read_document(root)
    elements = list(root.iter())
    parents = {child: parent for parent in elements for child in parent}
    for element in elements:
        element.tag = _local(element.tag)

    modeled = {obj._source_key for obj in original.iter_objects()}
    placed: dict[int, ET.Element] = {}
    used: set[int] = set()
    for obj in document.iter_objects():
        key = obj._source_key
        if key in modeled and key not in used:
            placed[id(obj)] = elements[key]
            used.add(key)

    for key in sorted(modeled - used):
        element = elements[key]
        parents[element].remove(element)
    return root, placed


def build_stb_tree(document: StbDocument) -> ET.Element:
    """Build the XML element tree for a document.

    A document parsed from XML is written by editing a fresh copy of its
    source tree, so content outside the model (StbCommon, slabs, walls,
    rebar, ...) is carried over. Any other document is written from the
    model alone.
    """
    if document.source is not None:
        root, placed = _source_tree(document)
    else:
        root = ET.Element(document.root or ROOT_TAG)
        for group in document.groups:
            ET.SubElement(root, group)
        placed = {}

    _sync(root, _root_attrs(document))
    _ModelWriter(root, placed).write(document)
    return root


def to_stb_xml(document: StbDocument) -> str:
    root = build_stb_tree(document)
    ET.indent(root)
    return XML_DECLARATION + ET.tostring(root, encoding="unicode")


def write_stb_xml(document: StbDocument, path: str | Path) -> Path:
    """Write a document as UTF-8 ST-Bridge XML. Creates parent dirs if needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    root = build_stb_tree(document)
    ET.indent(root)
    ET.ElementTree(root).write(path, encoding="utf-8", xml_declaration=True)
    logger.info("Wrote %s: %s", path, document.summary())
    return path
