"""ST-Bridge document models."""

from stb_validator.models.geometry import Point3D
from stb_validator.models.elements import (
    ELEMENT_KINDS,
    KIND_BY_TAG,
    UNSET_SECTION,
    ElementKind,
    ElementKindSpec,
    NodeLayout,
    StbMember,
    StbObject,
)
from stb_validator.models.document import (
    StbAxis,
    StbAxisGroup,
    StbDocument,
    StbNode,
    StbSection,
    StbStory,
)

__all__ = [
    "Point3D",
    "ELEMENT_KINDS",
    "KIND_BY_TAG",
    "UNSET_SECTION",
    "ElementKind",
    "ElementKindSpec",
    "NodeLayout",
    "StbMember",
    "StbObject",
    "StbAxis",
    "StbAxisGroup",
    "StbDocument",
    "StbNode",
    "StbSection",
    "StbStory",
]
