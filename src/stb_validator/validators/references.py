"""Reference integrity: member node and section references must resolve."""

from __future__ import annotations

from stb_validator.accessors import ModelSnapshot
from stb_validator.models.elements import ELEMENT_KINDS, StbMember
from stb_validator.validators.issues import Category, ValidationIssue


def validate_references(snapshot: ModelSnapshot) -> list[ValidationIssue]:
    """One Reference error per member attribute naming a missing node or section.

    Absent attributes are the element pass's concern and are skipped here.
    Section ids resolve against every section defined in the document,
    whatever kind it serves. A kind's "unset" sentinel is never checked.
    Piles resolve only the node attributes of the form they use.
    """
    issues: list[ValidationIssue] = []

    for kind, spec in ELEMENT_KINDS.items():
        for member in snapshot.elements.get(kind, ()):
            for attribute in member.node_reference_attributes():
                node_id = member.get_attribute(attribute)
                if node_id and node_id not in snapshot.node_ids:
                    issues.append(_dangling(member, attribute, node_id, "node"))

            for attribute in spec.section_attributes:
                section_id = member.get_attribute(attribute)
                if not section_id or section_id == spec.unset_section:
                    continue
                if section_id not in snapshot.section_ids:
                    issues.append(_dangling(member, attribute, section_id, "section"))

    return issues


def _dangling(member: StbMember, attribute: str, target_id: str, target: str) -> ValidationIssue:
    return ValidationIssue.error(
        Category.REFERENCE,
        f'{member.tag} {member.id or ""} references missing {target} "{target_id}" ({attribute})',
        element_type=member.tag,
        element_id=member.id or "",
        attribute=attribute,
        value=target_id,
        repairable=True,
        repair_suggestion="Remove the element or fix the reference",
    )
