"""Document shape checks: root element, version, required groups, nodes.

Nothing found here can be repaired automatically.
"""

from __future__ import annotations

from stb_validator.models.document import REQUIRED_GROUPS, ROOT_TAG, StbDocument
from stb_validator.validators.issues import Category, ValidationIssue

SUPPORTED_VERSION_PREFIX = "2."


def validate_structure(document: StbDocument) -> list[ValidationIssue]:
    """Check the document has an ST_BRIDGE root, required groups and nodes."""
    issues: list[ValidationIssue] = []

    if document.root != ROOT_TAG:
        issues.append(
            ValidationIssue.error(
                Category.STRUCTURE,
                f"Root element is {document.root!r}, not {ROOT_TAG}",
                element_type="Document",
                value=document.root,
                expected=ROOT_TAG,
            )
        )

    if document.version and not document.version.startswith(SUPPORTED_VERSION_PREFIX):
        issues.append(
            ValidationIssue.warning(
                Category.STRUCTURE,
                f"ST-Bridge version {document.version} may not be fully supported",
                element_type=ROOT_TAG,
                attribute="version",
                value=document.version,
            )
        )

    for group in REQUIRED_GROUPS:
        if group not in document.groups:
            issues.append(
                ValidationIssue.error(
                    Category.STRUCTURE,
                    f"Required element {group} is missing",
                    element_type=group,
                )
            )

    if not document.nodes:
        issues.append(
            ValidationIssue.error(
                Category.STRUCTURE,
                "No StbNode elements found; a structural model needs nodes",
                element_type="StbNodes",
            )
        )

    return issues
