"""Cross-section data checks.

``validate_section_data`` is the pluggable rule set: it looks at one section's
shape key and raw dimensions and returns errors (data unusable for a profile
generator) and warnings (plausible but worth a look). ``validate_sections``
is the validation pass that runs it over every section of a document.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable

from stb_validator.accessors import ModelSnapshot, extract_all_sections
from stb_validator.models.document import StbSection
from stb_validator.models.elements import ElementKind
from stb_validator.validators.issues import Category, ValidationIssue

logger = logging.getLogger(__name__)

SECTION_TYPES = frozenset({"H", "BOX", "PIPE", "C", "L", "T", "FB", "RECTANGLE", "CIRCLE", "CFT", "SRC"})
CIRCULAR_TYPES = frozenset({"CIRCLE", "PIPE"})

# Dimension keys in lookup order; the first one present wins
WIDTH_KEYS = ("width", "width_X", "B")
HEIGHT_KEYS = ("height", "width_Y", "A", "H", "depth")
DIAMETER_KEYS = ("diameter", "D")
THICKNESS_KEYS = ("thickness", "t", "t1", "t2")
NUMERIC_KEYS = WIDTH_KEYS + HEIGHT_KEYS + DIAMETER_KEYS + THICKNESS_KEYS

MIN_DIMENSION = 0.1  # mm
MAX_DIMENSION = 100_000.0  # mm

# (unusually small, unusually large) per dimension, mm
WARNING_THRESHOLDS: dict[str, tuple[float, float]] = {
    "width": (10, 10_000),
    "height": (10, 50_000),
    "diameter": (10, 5_000),
    "thickness": (1, 1_000),
}

# Values written by repair when a dimension is invalid, mm
DEFAULT_DIMENSIONS: dict[str, float] = {
    **{key: 300.0 for key in WIDTH_KEYS + HEIGHT_KEYS + DIAMETER_KEYS},
    **{key: 10.0 for key in THICKNESS_KEYS},
}


@dataclass(frozen=True)
class SectionViolation:
    """One finding on a section. ``dimension`` is the dimensions key at fault."""

    dimension: str | None
    message: str
    repairable: bool = True


@dataclass
class SectionCheck:
    errors: list[SectionViolation] = field(default_factory=list)
    warnings: list[SectionViolation] = field(default_factory=list)


SectionValidator = Callable[[StbSection, ElementKind], SectionCheck]


def find_dimension(dimensions: dict[str, str], keys: tuple[str, ...]) -> tuple[str, str] | None:
    """(key, raw value) of the first of ``keys`` present in ``dimensions``."""
    for key in keys:
        if key in dimensions:
            return key, dimensions[key]
    return None


def _as_float(raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        return math.nan


def is_circular_section(section: StbSection) -> bool:
    """Circular when the shape says so, or when only a diameter is given."""
    if section.section_type and section.section_type.upper() in CIRCULAR_TYPES:
        return True
    dims = section.dimensions
    return find_dimension(dims, DIAMETER_KEYS) is not None and find_dimension(dims, WIDTH_KEYS) is None


def validate_section_data(section: StbSection | None, kind: ElementKind | None = None) -> SectionCheck:
    """Check one section's shape key and dimensions."""
    check = SectionCheck()
    if section is None:
        check.errors.append(SectionViolation(None, "Section data is missing", repairable=False))
        return check

    _check_section_type(section, check)

    checked: set[str] = set()
    if is_circular_section(section):
        _check_circular(section, check, checked)
    else:
        _check_rectangular(section, check, checked)

    # Non-finite values in keys the shape rules did not look at
    for key in NUMERIC_KEYS:
        if key in section.dimensions and key not in checked:
            if not math.isfinite(_as_float(section.dimensions[key])):
                check.errors.append(
                    SectionViolation(key, f'{key} must be a finite number, got "{section.dimensions[key]}"')
                )

    return check


def _check_section_type(section: StbSection, check: SectionCheck) -> None:
    section_type = section.section_type
    if not section_type:
        check.errors.append(SectionViolation(None, "Section type is missing", repairable=False))
        return
    if section_type in SECTION_TYPES:
        return
    normalized = section_type.upper()
    if normalized in SECTION_TYPES:
        check.warnings.append(
            SectionViolation(None, f'Section type "{section_type}" should be normalized to "{normalized}"')
        )
    else:
        check.warnings.append(
            SectionViolation(
                None,
                f'Unknown section type "{section_type}". Allowed types: {", ".join(sorted(SECTION_TYPES))}',
            )
        )


def _check_circular(section: StbSection, check: SectionCheck, checked: set[str]) -> None:
    diameter = find_dimension(section.dimensions, DIAMETER_KEYS)
    if diameter is None:
        check.errors.append(SectionViolation("diameter", "Circular section is missing diameter"))
    else:
        checked.add(diameter[0])
        _check_value(diameter[0], diameter[1], "diameter", check)

    thickness = find_dimension(section.dimensions, THICKNESS_KEYS)
    if thickness is None:
        return
    checked.add(thickness[0])
    _check_value(thickness[0], thickness[1], "thickness", check)

    if diameter is not None:
        d = _as_float(diameter[1])
        t = _as_float(thickness[1])
        if math.isfinite(d) and math.isfinite(t) and t >= d / 2:
            check.errors.append(
                SectionViolation(thickness[0], f"Thickness ({t:g}mm) must be less than radius ({d / 2:g}mm)")
            )


def _check_rectangular(section: StbSection, check: SectionCheck, checked: set[str]) -> None:
    width = find_dimension(section.dimensions, WIDTH_KEYS)
    height = find_dimension(section.dimensions, HEIGHT_KEYS)

    if width is None and height is None:
        check.errors.append(SectionViolation("width", "Section is missing width"))
        check.errors.append(SectionViolation("height", "Section is missing height"))
    else:
        if width is None:
            check.warnings.append(SectionViolation("width", "Width is missing (only height specified)"))
        else:
            checked.add(width[0])
            _check_value(width[0], width[1], "width", check)
        if height is None:
            check.warnings.append(SectionViolation("height", "Height is missing (only width specified)"))
        else:
            checked.add(height[0])
            _check_value(height[0], height[1], "height", check)

    thickness = find_dimension(section.dimensions, THICKNESS_KEYS)
    if thickness is not None:
        checked.add(thickness[0])
        _check_value(thickness[0], thickness[1], "thickness", check)


def _check_value(key: str, raw: str, dimension: str, check: SectionCheck) -> None:
    value = _as_float(raw)
    if not math.isfinite(value):
        check.errors.append(SectionViolation(key, f'{key} must be a finite number, got "{raw}"'))
        return
    if value < 0:
        check.errors.append(SectionViolation(key, f"{key} must be positive, got {value:g}mm"))
        return
    if value == 0:
        check.errors.append(SectionViolation(key, f"{key} cannot be zero"))
        return
    if value < MIN_DIMENSION:
        check.errors.append(SectionViolation(key, f"{key} ({value:g}mm) is below minimum ({MIN_DIMENSION:g}mm)"))
    if value > MAX_DIMENSION:
        check.errors.append(SectionViolation(key, f"{key} ({value:g}mm) exceeds maximum ({MAX_DIMENSION:g}mm)"))

    low, high = WARNING_THRESHOLDS[dimension]
    if value < low:
        check.warnings.append(SectionViolation(key, f"{key} ({value:g}mm) is unusually small (< {low:g}mm)"))
    if value > high:
        check.warnings.append(SectionViolation(key, f"{key} ({value:g}mm) is unusually large (> {high:g}mm)"))


def validate_sections(
    snapshot: ModelSnapshot, section_validator: SectionValidator = validate_section_data
) -> list[ValidationIssue]:
    """Run the section validator over every section in the document."""
    issues: list[ValidationIssue] = []
    try:
        sections = extract_all_sections(snapshot.document)
        for kind, by_id in sections.items():
            for section_id, section in by_id.items():
                result = section_validator(section, kind)
                for violation in result.errors:
                    issues.append(
                        ValidationIssue.error(
                            Category.DATA,
                            f"Section {section_id}: {violation.message}",
                            element_type=section.tag,
                            element_id=section_id,
                            attribute=violation.dimension,
                            repairable=violation.repairable,
                            repair_suggestion="Apply a default dimension" if violation.repairable else None,
                        )
                    )
                for violation in result.warnings:
                    issues.append(
                        ValidationIssue.warning(
                            Category.DATA,
                            f"Section {section_id}: {violation.message}",
                            element_type=section.tag,
                            element_id=section_id,
                            attribute=violation.dimension,
                        )
                    )
    except Exception as e:
        logger.warning("Section extraction failed: %s", e, exc_info=True)
        issues.append(
            ValidationIssue.warning(
                Category.STRUCTURE,
                f"Error while extracting section data: {e}",
                element_type="Sections",
            )
        )
    return issues
