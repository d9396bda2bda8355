"""Automated repair of validation issues.

The engine works on a deep copy of the document and walks every issue of a
validation report in order. Each issue yields exactly one ``RepairAction``,
either applied or skipped with a reason. Repairs locate their target by
what the issue describes and re-check that the problem is still there, so
running the same report twice applies nothing the second time.

Dispatch is on (category, attribute shape):

    Data + coordinate / level_top / section dimension  -> set default or clamp
    Data + story name                                  -> synthesize a name
    Data + member node or section attribute            -> remove the member
    Reference, Geometry on a member                    -> remove the member
    Duplicate + story height / axis distance           -> drop the later one
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from pydantic import BaseModel, Field, computed_field

from stb_validator.accessors import AxisRecord, iter_axes, parse_number, stories_by_height
from stb_validator.models.document import StbAxis, StbAxisGroup, StbDocument, StbSection
from stb_validator.models.elements import KIND_BY_TAG, StbMember
from stb_validator.validators.elements import DEFAULT_PILE_LEVEL_TOP
from stb_validator.validators.issues import Category, ValidationIssue, ValidationReport
from stb_validator.validators.nodes import COORDINATE_ATTRIBUTES, MAX_COORDINATE
from stb_validator.validators.sections import (
    DEFAULT_DIMENSIONS,
    DIAMETER_KEYS,
    MAX_DIMENSION,
    MIN_DIMENSION,
    THICKNESS_KEYS,
    find_dimension,
    is_circular_section,
    validate_section_data,
)

logger = logging.getLogger(__name__)

DEFAULT_VALUES: dict[str, float] = {
    "X": 0.0,
    "Y": 0.0,
    "Z": 0.0,
    "level_top": DEFAULT_PILE_LEVEL_TOP,
    **DEFAULT_DIMENSIONS,
}


class RepairStrategy(str, Enum):
    SET_DEFAULT = "set_default"
    CLAMP_VALUE = "clamp_value"
    REMOVE_ELEMENT = "remove_element"
    DROP_DUPLICATE = "drop_duplicate"
    SYNTHESIZE_NAME = "synthesize_name"


class RepairStatus(str, Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"


# Skip reasons
NOT_REPAIRABLE = "issue is not repairable"
CATEGORY_EXCLUDED = "category excluded"
OPTION_DISABLED = "option disabled"
NO_STRATEGY = "no repair strategy"
TARGET_GONE = "target already gone"
ALREADY_VALID = "already valid"


class RepairOptions(BaseModel):
    """What the engine is allowed to do.

    ``defaults`` overrides built-in default values per attribute name.
    """

    remove_invalid: bool = True
    use_defaults: bool = True
    skip_categories: list[Category] = Field(default_factory=list)
    defaults: dict[str, float] = Field(default_factory=dict)


class RepairAction(BaseModel):
    """Outcome of handling one issue."""

    status: RepairStatus
    element_type: str
    element_id: str = ""
    attribute: str | None = None
    strategy: RepairStrategy | None = None
    reason: str = ""
    old_value: str | float | None = None
    new_value: str | float | None = None
    removed_element_id: str | None = None

    @property
    def applied(self) -> bool:
        return self.status == RepairStatus.APPLIED


class RepairReport(BaseModel):
    actions: list[RepairAction] = Field(default_factory=list)
    removed_elements: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @computed_field
    @property
    def success_count(self) -> int:
        return sum(1 for a in self.actions if a.status == RepairStatus.APPLIED)

    @computed_field
    @property
    def skipped_count(self) -> int:
        return sum(1 for a in self.actions if a.status == RepairStatus.SKIPPED)

    @property
    def applied(self) -> list[RepairAction]:
        return [a for a in self.actions if a.applied]

    @property
    def skipped(self) -> list[RepairAction]:
        return [a for a in self.actions if not a.applied]


@dataclass
class RepairResult:
    """Repaired working copy plus what was done to it."""

    document: StbDocument
    report: RepairReport


def _format_number(value: float) -> str:
    """Attribute text for a repaired number: integers without a decimal point."""
    if value.is_integer():
        return str(int(value))
    return repr(value)


def _is_member(issue: ValidationIssue) -> bool:
    return issue.element_type in KIND_BY_TAG


class RepairEngine:
    """Applies repairs to a private deep copy of a document.

    Usage:
        engine = RepairEngine(document)
        report = engine.auto_repair(validation_report)
        repaired = engine.document
    """

    def __init__(self, document: StbDocument):
        self.document = document.model_copy(deep=True)
        self.removed_elements: list[str] = []
        self._axes: list[tuple[str, StbAxisGroup, StbAxis, AxisRecord]] = []

    # ── Entry point ───────────────────────────────────────────────────

    def auto_repair(self, report: ValidationReport, options: RepairOptions | None = None) -> RepairReport:
        """Handle every issue of ``report`` in order."""
        options = options or RepairOptions()
        self._axes = list(iter_axes(self.document))
        actions = [self._handle(issue, options) for issue in report.issues]
        result = RepairReport(actions=actions, removed_elements=list(self.removed_elements))
        logger.info(
            "Repair finished: %d applied, %d skipped, %d element(s) removed",
            result.success_count,
            result.skipped_count,
            len(result.removed_elements),
        )
        return result

    def _handle(self, issue: ValidationIssue, options: RepairOptions) -> RepairAction:
        if not issue.repairable:
            return self._skip(issue, NOT_REPAIRABLE)
        if issue.category in options.skip_categories:
            return self._skip(issue, CATEGORY_EXCLUDED)

        plan = self._dispatch(issue)
        if plan is None:
            return self._skip(issue, NO_STRATEGY)
        strategy, needs_defaults, handler = plan
        allowed = options.use_defaults if needs_defaults else options.remove_invalid
        if not allowed:
            return self._skip(issue, OPTION_DISABLED, strategy)

        try:
            return handler(issue, options)
        except Exception as e:
            logger.warning("Repair of %s %s failed: %s", issue.element_type, issue.element_id, e, exc_info=True)
            return self._skip(issue, f"repair failed: {e}", strategy)

    def _dispatch(
        self, issue: ValidationIssue
    ) -> tuple[RepairStrategy, bool, Callable[[ValidationIssue, RepairOptions], RepairAction]] | None:
        """(strategy, needs use_defaults, handler) for an issue, or None."""
        attribute = issue.attribute
        element_type = issue.element_type

        if issue.category == Category.DATA:
            if element_type == "StbNode" and attribute in COORDINATE_ATTRIBUTES:
                return RepairStrategy.SET_DEFAULT, True, self._repair_coordinate
            if element_type == "StbStory" and attribute == "name":
                return RepairStrategy.SYNTHESIZE_NAME, True, self._repair_story_name
            if _is_member(issue):
                if attribute == "level_top":
                    return RepairStrategy.SET_DEFAULT, True, self._repair_level_top
                if attribute is not None:
                    return RepairStrategy.REMOVE_ELEMENT, False, self._remove_member
                return None
            if attribute in DEFAULT_DIMENSIONS:
                return RepairStrategy.SET_DEFAULT, True, self._repair_dimension
            return None

        if issue.category in (Category.REFERENCE, Category.GEOMETRY) and _is_member(issue):
            return RepairStrategy.REMOVE_ELEMENT, False, self._remove_member

        if issue.category == Category.DUPLICATE:
            if element_type == "StbStory" and attribute == "height":
                return RepairStrategy.DROP_DUPLICATE, False, self._drop_story
            if element_type == "StbParallelAxis" and attribute == "distance":
                return RepairStrategy.DROP_DUPLICATE, False, self._drop_axis

        return None

    # ── Action helpers ────────────────────────────────────────────────

    def _skip(self, issue: ValidationIssue, reason: str, strategy: RepairStrategy | None = None) -> RepairAction:
        return RepairAction(
            status=RepairStatus.SKIPPED,
            element_type=issue.element_type,
            element_id=issue.element_id,
            attribute=issue.attribute,
            strategy=strategy,
            reason=reason,
        )

    def _applied(self, issue: ValidationIssue, strategy: RepairStrategy, reason: str, **kwargs) -> RepairAction:
        return RepairAction(
            status=RepairStatus.APPLIED,
            element_type=issue.element_type,
            element_id=issue.element_id,
            attribute=issue.attribute,
            strategy=strategy,
            reason=reason,
            **kwargs,
        )

    def _default_for(self, attribute: str, options: RepairOptions) -> float:
        return options.defaults.get(attribute, DEFAULT_VALUES.get(attribute, 0.0))

    # ── Value repairs ─────────────────────────────────────────────────

    def _repair_coordinate(self, issue: ValidationIssue, options: RepairOptions) -> RepairAction:
        attribute = issue.attribute
        nodes = [n for n in self.document.nodes if (n.id or "") == issue.element_id]
        if not nodes:
            return self._skip(issue, TARGET_GONE, RepairStrategy.SET_DEFAULT)

        for node in nodes:
            raw = node.get_attribute(attribute)
            value = parse_number(raw)
            if value is None:
                new_value = self._default_for(attribute, options)
                node.set_attribute(attribute, _format_number(new_value))
                return self._applied(
                    issue, RepairStrategy.SET_DEFAULT, f"Set default value {new_value:g}",
                    old_value=raw, new_value=new_value,
                )
            if math.isinf(value):
                new_value = math.copysign(MAX_COORDINATE, value)
                node.set_attribute(attribute, _format_number(new_value))
                return self._applied(
                    issue, RepairStrategy.CLAMP_VALUE, f"Clamped to {new_value:g}",
                    old_value=raw, new_value=new_value,
                )

        return self._skip(issue, ALREADY_VALID, RepairStrategy.SET_DEFAULT)

    def _repair_level_top(self, issue: ValidationIssue, options: RepairOptions) -> RepairAction:
        members = self._members_for(issue)
        if not members:
            return self._skip(issue, TARGET_GONE, RepairStrategy.SET_DEFAULT)
        for member in members:
            if member.id_node and not member.level_top:
                new_value = self._default_for("level_top", options)
                member.level_top = _format_number(new_value)
                return self._applied(
                    issue, RepairStrategy.SET_DEFAULT, f"Set default level_top {new_value:g}",
                    new_value=new_value,
                )
        return self._skip(issue, ALREADY_VALID, RepairStrategy.SET_DEFAULT)

    def _repair_dimension(self, issue: ValidationIssue, options: RepairOptions) -> RepairAction:
        """Clamp a finite dimension into range; default a missing, non-positive or non-finite one."""
        section = self.document.find_section(issue.element_type, issue.element_id)
        if section is None:
            return self._skip(issue, TARGET_GONE, RepairStrategy.SET_DEFAULT)
        key = issue.attribute
        if not any(v.dimension == key for v in validate_section_data(section).errors):
            return self._skip(issue, ALREADY_VALID, RepairStrategy.SET_DEFAULT)

        old_text = section.dimensions.get(key)
        value = parse_number(old_text)
        if value is not None and math.isfinite(value) and value > 0:
            strategy = RepairStrategy.CLAMP_VALUE
            new_value = min(max(value, MIN_DIMENSION), MAX_DIMENSION)
            reason = f"Clamped dimension to {new_value:g}"
        else:
            strategy = RepairStrategy.SET_DEFAULT
            new_value = self._default_for(key, options)
            reason = f"Set default dimension {new_value:g}"
        section.dimensions[key] = _format_number(new_value)

        adjusted = _fit_wall(section, key)
        if adjusted is not None:
            reason += f"; {adjusted[0]} set to {adjusted[1]:g} to keep the wall thinner than the radius"
            if adjusted[0] == key:
                new_value = adjusted[1]
        return self._applied(issue, strategy, reason, old_value=old_text, new_value=new_value)

    def _repair_story_name(self, issue: ValidationIssue, options: RepairOptions) -> RepairAction:
        stories = [
            (index, s) for index, s in enumerate(self.document.stories, start=1)
            if (s.id or "") == issue.element_id
        ]
        if not stories:
            return self._skip(issue, TARGET_GONE, RepairStrategy.SYNTHESIZE_NAME)
        for index, story in stories:
            if not story.name or not story.name.strip():
                old = story.name
                story.name = f"Story_{issue.element_id or index}"
                return self._applied(
                    issue, RepairStrategy.SYNTHESIZE_NAME, f'Named story "{story.name}"',
                    old_value=old, new_value=story.name,
                )
        return self._skip(issue, ALREADY_VALID, RepairStrategy.SYNTHESIZE_NAME)

    # ── Removals ──────────────────────────────────────────────────────

    def _members_for(self, issue: ValidationIssue) -> list[StbMember]:
        return [
            m for m in self.document.members
            if m.tag == issue.element_type and (m.id or "") == issue.element_id
        ]

    def _remove_member(self, issue: ValidationIssue, options: RepairOptions) -> RepairAction:
        members = self._members_for(issue)
        if not members:
            return self._skip(issue, TARGET_GONE, RepairStrategy.REMOVE_ELEMENT)

        target = next((m for m in members if _still_broken(m, issue)), None)
        if target is None:
            return self._skip(issue, ALREADY_VALID, RepairStrategy.REMOVE_ELEMENT)

        self.document.remove_member(target)
        self.removed_elements.append(issue.element_id)
        logger.debug("Removed %s %s (%s)", issue.element_type, issue.element_id, issue.category.value)
        return self._applied(
            issue, RepairStrategy.REMOVE_ELEMENT, f"Removed {issue.element_type} {issue.element_id}",
            old_value=issue.value, removed_element_id=issue.element_id,
        )

    def _drop_story(self, issue: ValidationIssue, options: RepairOptions) -> RepairAction:
        if not any((s.id or "") == issue.element_id for s in self.document.stories):
            return self._skip(issue, TARGET_GONE, RepairStrategy.DROP_DUPLICATE)

        seen: set[float] = set()
        for height, story in stories_by_height(self.document):
            if height in seen and height == issue.value and (story.id or "") == issue.element_id:
                self.document.remove_story(story)
                self.removed_elements.append(issue.element_id)
                return self._applied(
                    issue, RepairStrategy.DROP_DUPLICATE, f"Dropped duplicate story at {height:g}mm",
                    old_value=height, removed_element_id=issue.element_id,
                )
            seen.add(height)
        return self._skip(issue, ALREADY_VALID, RepairStrategy.DROP_DUPLICATE)

    def _drop_axis(self, issue: ValidationIssue, options: RepairOptions) -> RepairAction:
        """Drop a duplicate axis, located in the axis list as it was when the run started.

        Synthesized ids (``<group_name>_<index>``) shift once an axis is
        removed, so they are only matched against that starting list.
        """
        found = False
        for position, (direction, group, axis, record) in enumerate(self._axes):
            if record.id != issue.element_id or record.distance != issue.value or not _contains(group.axes, axis):
                continue
            found = True
            if any(
                d == direction and r.distance == record.distance and _contains(g.axes, a)
                for d, g, a, r in self._axes[:position]
            ):
                group.axes = [a for a in group.axes if a is not axis]
                self.removed_elements.append(issue.element_id)
                return self._applied(
                    issue, RepairStrategy.DROP_DUPLICATE,
                    f"Dropped duplicate {direction} axis at {record.distance:g}mm",
                    old_value=record.distance, removed_element_id=issue.element_id,
                )
        return self._skip(issue, ALREADY_VALID if found else TARGET_GONE, RepairStrategy.DROP_DUPLICATE)


def _contains(items: list, obj: object) -> bool:
    return any(item is obj for item in items)


def _fit_wall(section: StbSection, repaired: str) -> tuple[str, float] | None:
    """Keep a circular section's wall thinner than its radius after ``repaired`` changed.

    A repaired diameter grows to four times the thickness; otherwise the
    thickness shrinks to a quarter of the diameter. Returns the (key, value)
    that was adjusted, or None when the pair is already consistent.
    """
    if not is_circular_section(section):
        return None
    diameter = find_dimension(section.dimensions, DIAMETER_KEYS)
    thickness = find_dimension(section.dimensions, THICKNESS_KEYS)
    if diameter is None or thickness is None:
        return None
    d = parse_number(diameter[1])
    t = parse_number(thickness[1])
    if d is None or t is None or not (math.isfinite(d) and math.isfinite(t)) or t < d / 2:
        return None

    if repaired == diameter[0] and 4 * t <= MAX_DIMENSION:
        key, value = diameter[0], 4 * t
    else:
        key, value = thickness[0], d / 4
    section.dimensions[key] = _format_number(value)
    return key, value


def _still_broken(member: StbMember, issue: ValidationIssue) -> bool:
    """Whether ``member`` still shows the problem ``issue`` describes."""
    if issue.category == Category.REFERENCE:
        return member.get_attribute(issue.attribute) == issue.value
    if issue.category == Category.DATA:
        if issue.attribute == "id_node":
            return not member.id_node and member.endpoint_attributes() is None
        return not member.get_attribute(issue.attribute)
    return True


def auto_repair_document(
    document: StbDocument,
    report: ValidationReport,
    options: RepairOptions | None = None,
) -> RepairResult:
    """Repair a copy of ``document`` using the issues in ``report``.

    The input document is left untouched.
    """
    engine = RepairEngine(document)
    repair_report = engine.auto_repair(report, options)
    return RepairResult(document=engine.document, report=repair_report)
