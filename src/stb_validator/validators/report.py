"""Plain-text rendering of a validation report."""

from __future__ import annotations

from stb_validator.validators.issues import Severity, ValidationReport

BANNER = "=" * 60

SEVERITY_HEADINGS = (
    (Severity.ERROR, "[Errors]"),
    (Severity.WARNING, "[Warnings]"),
    (Severity.INFO, "[Info]"),
)


def format_validation_report(report: ValidationReport) -> str:
    """Render a report as the fixed text layout shown to users.

    Banner, title, timestamp, validity, statistics and per-element-type
    counts come first, then issues grouped Error, Warning, Info.
    """
    stats = report.statistics
    lines = [
        BANNER,
        "ST-Bridge Validation Report",
        BANNER,
        "",
        f"Validated at: {report.timestamp.isoformat()}",
        f"Result: {'✓ Valid' if report.valid else '✗ Errors found'}",
        "",
        "--- Statistics ---",
        f"Total elements: {stats.total_elements}",
        f"Errors: {stats.error_count}",
        f"Warnings: {stats.warning_count}",
        f"Info: {stats.info_count}",
        f"Repairable: {stats.repairable_count}",
        "",
    ]

    if stats.element_counts:
        lines.append("--- Element counts ---")
        for element_type, count in stats.element_counts.items():
            lines.append(f"  {element_type}: {count}")
        lines.append("")

    if report.issues:
        lines.append("--- Issues ---")
        for severity, heading in SEVERITY_HEADINGS:
            group = [i for i in report.issues if i.severity == severity]
            if not group:
                continue
            lines.append("")
            lines.append(heading)
            for issue in group:
                lines.append(f"  - {issue.message}")
                if issue.element_id:
                    lines.append(f"    Element: {issue.element_type} (ID: {issue.element_id})")
                if issue.repairable and issue.repair_suggestion:
                    lines.append(f"    Suggestion: {issue.repair_suggestion}")
    else:
        lines.append("No issues found.")

    lines.append("")
    lines.append(BANNER)
    return "\n".join(lines)
