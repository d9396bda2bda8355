"""Member length checks on resolved two-node members."""

from __future__ import annotations

from stb_validator.accessors import ModelSnapshot
from stb_validator.models.elements import ELEMENT_KINDS, StbMember
from stb_validator.validators.issues import Category, ValidationIssue

MIN_MEMBER_LENGTH = 100.0  # mm


def member_length(snapshot: ModelSnapshot, member: StbMember) -> float | None:
    """Distance between a member's endpoints, None when it cannot be computed.

    One-node forms, unresolved endpoints and members whose ends name the
    same node have no meaningful length here.
    """
    attributes = member.endpoint_attributes()
    if attributes is None:
        return None
    first_id = member.get_attribute(attributes[0])
    second_id = member.get_attribute(attributes[1])
    if not first_id or not second_id or first_id == second_id:
        return None
    first = snapshot.node_map.get(first_id)
    second = snapshot.node_map.get(second_id)
    if first is None or second is None:
        return None
    return first.distance_to(second)


def validate_geometry(snapshot: ModelSnapshot) -> list[ValidationIssue]:
    """Warn about members shorter than 100 mm or longer than their kind allows."""
    issues: list[ValidationIssue] = []

    for kind, spec in ELEMENT_KINDS.items():
        if spec.max_length is None:
            continue
        for member in snapshot.elements.get(kind, ()):
            length = member_length(snapshot, member)
            if length is None:
                continue
            member_id = member.id or ""

            if length < MIN_MEMBER_LENGTH:
                issues.append(
                    ValidationIssue.warning(
                        Category.GEOMETRY,
                        f"{spec.tag} {member_id} is very short ({length:.1f}mm)",
                        element_type=spec.tag,
                        element_id=member_id,
                        value=length,
                        repairable=True,
                        repair_suggestion=f"Remove elements shorter than {MIN_MEMBER_LENGTH:g}mm",
                    )
                )
            if length > spec.max_length:
                issues.append(
                    ValidationIssue.warning(
                        Category.GEOMETRY,
                        f"{spec.tag} {member_id} is very long ({length:.1f}mm)",
                        element_type=spec.tag,
                        element_id=member_id,
                        value=length,
                        expected=f"<= {spec.max_length:g}mm",
                    )
                )

    return issues
