"""Per-kind member validation: ids, section references, node reference layout."""

from __future__ import annotations

from typing import Callable

from stb_validator.accessors import ModelSnapshot
from stb_validator.models.elements import ELEMENT_KINDS, NodeLayout, StbMember
from stb_validator.validators.issues import Category, ValidationIssue

# One-node piles without level_top get this level on repair (mm)
DEFAULT_PILE_LEVEL_TOP = -5000.0


def validate_elements(snapshot: ModelSnapshot) -> list[ValidationIssue]:
    """Check every member kind in table order.

    Duplicate ids are reported once per extra occurrence and cannot be
    repaired. A missing required section or node attribute makes the member
    unusable, so those are repaired by removing it.
    """
    issues: list[ValidationIssue] = []

    for kind, spec in ELEMENT_KINDS.items():
        seen_ids: set[str] = set()
        check_layout = _LAYOUT_CHECKS[spec.layout]

        for member in snapshot.elements.get(kind, ()):
            member_id = member.id or ""

            if member.id:
                if member.id in seen_ids:
                    issues.append(
                        ValidationIssue.error(
                            Category.DUPLICATE,
                            f'{spec.tag} id "{member_id}" is duplicated',
                            element_type=spec.tag,
                            element_id=member_id,
                            attribute="id",
                        )
                    )
                seen_ids.add(member.id)

            section_attr = spec.required_section
            if not member.get_attribute(section_attr):
                issues.append(
                    ValidationIssue.error(
                        Category.DATA,
                        f"{spec.tag} {member_id} has no {section_attr} attribute",
                        element_type=spec.tag,
                        element_id=member_id,
                        attribute=section_attr,
                        repairable=True,
                        repair_suggestion="Remove the element",
                    )
                )

            issues.extend(check_layout(member))

    return issues


def _missing_node(member: StbMember, attribute: str) -> ValidationIssue:
    return ValidationIssue.error(
        Category.DATA,
        f"{member.tag} {member.id or ''} has no {attribute} attribute",
        element_type=member.tag,
        element_id=member.id or "",
        attribute=attribute,
        repairable=True,
        repair_suggestion="Remove the element",
    )


def _zero_length(member: StbMember, node_id: str) -> ValidationIssue:
    return ValidationIssue.error(
        Category.GEOMETRY,
        f'{member.tag} {member.id or ""} is zero-length: both ends reference node "{node_id}"',
        element_type=member.tag,
        element_id=member.id or "",
        value=node_id,
        repairable=True,
        repair_suggestion="Remove the zero-length element",
    )


def _check_two_node(member: StbMember) -> list[ValidationIssue]:
    issues = []
    first_attr, second_attr = member.spec.node_attributes
    first = member.get_attribute(first_attr)
    second = member.get_attribute(second_attr)

    if not first:
        issues.append(_missing_node(member, first_attr))
    if not second:
        issues.append(_missing_node(member, second_attr))
    if first and second and first == second:
        issues.append(_zero_length(member, first))
    return issues


def _check_single_node(member: StbMember) -> list[ValidationIssue]:
    if not member.id_node:
        return [_missing_node(member, "id_node")]
    return []


def _check_pile(member: StbMember) -> list[ValidationIssue]:
    """Piles are either bottom/top, or one node plus level_top."""
    member_id = member.id or ""

    if member.id_node_bottom and member.id_node_top:
        if member.id_node_bottom == member.id_node_top:
            return [_zero_length(member, member.id_node_bottom)]
        return []

    if member.id_node:
        if not member.level_top:
            return [
                ValidationIssue.error(
                    Category.DATA,
                    f"{member.tag} {member_id} has no level_top attribute (one-node form)",
                    element_type=member.tag,
                    element_id=member_id,
                    attribute="level_top",
                    repairable=True,
                    repair_suggestion=f"Set default level_top {DEFAULT_PILE_LEVEL_TOP:g}",
                )
            ]
        return []

    return [
        ValidationIssue.error(
            Category.DATA,
            f"{member.tag} {member_id} uses neither the bottom/top nor the one-node form",
            element_type=member.tag,
            element_id=member_id,
            attribute="id_node",
            repairable=True,
            repair_suggestion="Remove the element",
        )
    ]


_LAYOUT_CHECKS: dict[NodeLayout, Callable[[StbMember], list[ValidationIssue]]] = {
    NodeLayout.BOTTOM_TOP: _check_two_node,
    NodeLayout.START_END: _check_two_node,
    NodeLayout.SINGLE: _check_single_node,
    NodeLayout.PILE: _check_pile,
}
