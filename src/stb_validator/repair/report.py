"""Plain-text rendering of a repair report."""

from __future__ import annotations

from stb_validator.repair.engine import RepairReport

BANNER = "=" * 60


def format_repair_report(report: RepairReport | None) -> str:
    if report is None:
        return "No repair report available."

    lines = [
        BANNER,
        "ST-Bridge Repair Report",
        BANNER,
        "",
        f"Executed at: {report.timestamp.isoformat()}",
        "",
        "--- Summary ---",
        f"Issues handled: {len(report.actions)}",
        f"Applied: {report.success_count}",
        f"Skipped: {report.skipped_count}",
        f"Removed elements: {len(report.removed_elements)}",
        "",
    ]

    if report.applied:
        lines.append("--- Applied repairs ---")
        for action in report.applied:
            lines.append(f"  [{action.strategy.value}] {action.element_type}")
            if action.element_id:
                lines.append(f"    ID: {action.element_id}")
            if action.attribute:
                lines.append(f"    Attribute: {action.attribute}")
                if action.old_value is not None:
                    lines.append(f"    Old value: {action.old_value}")
                if action.new_value is not None:
                    lines.append(f"    New value: {action.new_value}")
            lines.append(f"    {action.reason}")
            lines.append("")

    if report.skipped:
        lines.append("--- Skipped ---")
        for action in report.skipped:
            label = action.strategy.value if action.strategy else "-"
            lines.append(f"  [{label}] {action.element_type}")
            if action.element_id:
                lines.append(f"    ID: {action.element_id}")
            lines.append(f"    Reason: {action.reason}")
            lines.append("")

    removals = [a for a in report.applied if a.removed_element_id is not None]
    if removals:
        lines.append("--- Removed elements ---")
        for action in removals:
            lines.append(f"  - {action.element_type} (ID: {action.removed_element_id})")
        lines.append("")

    lines.append(BANNER)
    return "\n".join(lines)
