"""Node validation: duplicate ids and coordinate values."""

from __future__ import annotations

import math

from stb_validator.accessors import ModelSnapshot
from stb_validator.validators.issues import Category, ValidationIssue

MAX_COORDINATE = 1e9  # mm (1,000 km); beyond this the value is almost certainly corrupt
COORDINATE_ATTRIBUTES = ("X", "Y", "Z")


def validate_nodes(snapshot: ModelSnapshot) -> list[ValidationIssue]:
    """Check node ids are unique and coordinates are usable numbers.

    Every extra occurrence of an id yields one duplicate issue. Missing,
    non-numeric and infinite coordinates are repairable errors; huge but
    finite coordinates only get a warning.
    """
    issues: list[ValidationIssue] = []
    seen_ids: set[str] = set()

    for node in snapshot.document.nodes:
        node_id = node.id or ""

        if node.id:
            if node.id in seen_ids:
                issues.append(
                    ValidationIssue.error(
                        Category.DUPLICATE,
                        f'Node id "{node_id}" is duplicated',
                        element_type="StbNode",
                        element_id=node_id,
                        attribute="id",
                    )
                )
            seen_ids.add(node.id)

        for attribute in COORDINATE_ATTRIBUTES:
            issue = _check_coordinate(node_id, attribute, node.get_attribute(attribute))
            if issue is not None:
                issues.append(issue)

    return issues


def _check_coordinate(node_id: str, attribute: str, raw: str | None) -> ValidationIssue | None:
    if raw is None or not raw.strip():
        return ValidationIssue.error(
            Category.DATA,
            f"Node {node_id} is missing its {attribute} coordinate",
            element_type="StbNode",
            element_id=node_id,
            attribute=attribute,
            repairable=True,
            repair_suggestion="Set default value 0",
        )

    try:
        value = float(raw)
    except ValueError:
        value = math.nan

    if math.isnan(value):
        return ValidationIssue.error(
            Category.DATA,
            f'Node {node_id} {attribute} coordinate "{raw}" is not a number',
            element_type="StbNode",
            element_id=node_id,
            attribute=attribute,
            value=raw,
            repairable=True,
            repair_suggestion="Replace the invalid value with 0",
        )

    if math.isinf(value):
        return ValidationIssue.error(
            Category.DATA,
            f"Node {node_id} {attribute} coordinate is infinite",
            element_type="StbNode",
            element_id=node_id,
            attribute=attribute,
            value=raw,
            repairable=True,
            repair_suggestion=f"Clamp to ±{MAX_COORDINATE:g}",
        )

    if abs(value) > MAX_COORDINATE:
        return ValidationIssue.warning(
            Category.DATA,
            f"Node {node_id} {attribute} coordinate {value}mm is extremely large",
            element_type="StbNode",
            element_id=node_id,
            attribute=attribute,
            value=value,
        )

    return None
