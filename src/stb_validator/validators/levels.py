"""Story and grid axis validation."""

from __future__ import annotations

from stb_validator.accessors import AxisRecord, ModelSnapshot
from stb_validator.validators.issues import Category, ValidationIssue


def validate_stories(snapshot: ModelSnapshot) -> list[ValidationIssue]:
    """Flag duplicate story heights and unnamed stories.

    Stories are visited in height order; for each height only the first
    story is kept clean, every later one gets a duplicate warning.
    """
    issues: list[ValidationIssue] = []
    seen_heights: dict[float, str | None] = {}

    for story in snapshot.stories:
        story_id = story.id or ""
        if story.height in seen_heights:
            issues.append(
                ValidationIssue.warning(
                    Category.DUPLICATE,
                    f'Story "{story.name}" height {story.height:g}mm duplicates '
                    f'story "{seen_heights[story.height]}"',
                    element_type="StbStory",
                    element_id=story_id,
                    attribute="height",
                    value=story.height,
                    repairable=True,
                    repair_suggestion="Remove the duplicate story",
                )
            )
        else:
            seen_heights[story.height] = story.name

        if not story.name or not story.name.strip():
            issues.append(
                ValidationIssue.warning(
                    Category.DATA,
                    f"Story {story_id} has no name",
                    element_type="StbStory",
                    element_id=story_id,
                    attribute="name",
                    repairable=True,
                    repair_suggestion=f'Set default name "Story_{story_id}"',
                )
            )

    return issues


def validate_axes(snapshot: ModelSnapshot) -> list[ValidationIssue]:
    """Flag duplicate distances per axis direction and negative distances."""
    issues: list[ValidationIssue] = []
    issues.extend(_validate_axis_direction(snapshot.axes.x_axes, "X"))
    issues.extend(_validate_axis_direction(snapshot.axes.y_axes, "Y"))
    return issues


def _validate_axis_direction(axes: tuple[AxisRecord, ...], direction: str) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    seen_distances: dict[float, str | None] = {}

    for axis in axes:
        if axis.distance in seen_distances:
            issues.append(
                ValidationIssue.warning(
                    Category.DUPLICATE,
                    f'{direction} axis "{axis.name}" distance {axis.distance:g}mm duplicates '
                    f'axis "{seen_distances[axis.distance]}"',
                    element_type="StbParallelAxis",
                    element_id=axis.id,
                    attribute="distance",
                    value=axis.distance,
                    repairable=True,
                    repair_suggestion="Remove the duplicate axis",
                )
            )
        else:
            seen_distances[axis.distance] = axis.name

        if axis.distance < 0:
            issues.append(
                ValidationIssue.info(
                    Category.DATA,
                    f'{direction} axis "{axis.name}" has a negative distance ({axis.distance:g}mm)',
                    element_type="StbParallelAxis",
                    element_id=axis.id,
                    attribute="distance",
                    value=axis.distance,
                )
            )

    return issues
