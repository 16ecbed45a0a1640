"""Field-difference computation and rendering."""

from __future__ import annotations

from collections.abc import Mapping

from .action_context import FieldDifference, FieldStatus, FillResult
from .template_fill import FillPlan

_STATUS_ICONS = {
    FieldStatus.UPDATED: "✅",
    FieldStatus.UNABLE: "❌",
    FieldStatus.SKIPPED: "⏭️",
    FieldStatus.DISABLED: "🔒",
}

_LEGEND = (
    "Legend:\n"
    "  ✅ updated  - value changed as requested\n"
    "  ❌ unable   - value could not be set or did not change\n"
    "  ⏭️ skipped  - field intentionally left untouched\n"
    "  🔒 disabled - field is read-only in the form\n"
)


def compute_field_differences(
    before: Mapping[str, str | None],
    after: Mapping[str, str | None],
    plan: FillPlan,
    fill_results: Mapping[str, FillResult],
) -> tuple[FieldDifference, ...]:
    """Compare before/after values for every planned or skipped field, in plan order."""
    differences: list[FieldDifference] = []
    seen: set[str] = set()
    for step in plan.steps:
        seen.add(step.qid)
        original, new = before.get(step.qid), after.get(step.qid)
        result = fill_results.get(step.qid)
        if result is not None and not result.applied:
            status = result.status or FieldStatus.UNABLE
            differences.append(FieldDifference(step.qid, original, new, status, result.comment))
        elif _normalize(original) != _normalize(new):
            differences.append(FieldDifference(step.qid, original, new, FieldStatus.UPDATED))
        else:
            differences.append(
                FieldDifference(step.qid, original, new, FieldStatus.UNABLE, "value unchanged")
            )
    for skipped in plan.skipped:
        if skipped.qid in seen or skipped.qid not in before:
            continue
        seen.add(skipped.qid)
        differences.append(
            FieldDifference(
                skipped.qid,
                before.get(skipped.qid),
                after.get(skipped.qid, before.get(skipped.qid)),
                FieldStatus.SKIPPED,
                skipped.reason,
            )
        )
    for qid, new in after.items():
        if qid not in seen and _normalize(before.get(qid)) != _normalize(new):
            differences.append(FieldDifference(qid, before.get(qid), new, FieldStatus.UPDATED))
    return tuple(differences)


def has_changes(differences: tuple[FieldDifference, ...]) -> bool:
    return any(difference.status is FieldStatus.UPDATED for difference in differences)


def render_field_differences(
    differences: tuple[FieldDifference, ...],
    *,
    school_id: str,
    action: str,
) -> str:
    """Render the field-difference document as a legend followed by a markdown table."""
    lines = [
        f"Field differences for {school_id} ({action})",
        "",
        _LEGEND,
        "| Field | Original | New | Status | Comments |",
        "|---|---|---|---|---|",
    ]
    for difference in differences:
        lines.append(
            "| {field} | {original} | {new} | {icon} {status} | {comment} |".format(
                field=_cell(difference.field),
                original=_cell(difference.original),
                new=_cell(difference.new),
                icon=_STATUS_ICONS[difference.status],
                status=difference.status.value,
                comment=_cell(difference.comment),
            )
        )
    if not differences:
        lines.append("| _no fields compared_ | | | | |")
    return "\n".join(lines) + "\n"


def _normalize(value: str | None) -> str:
    return (value or "").strip()


def _cell(value: str | None) -> str:
    if value is None:
        return "(none)"
    return value.replace("|", "\\|").replace("\n", " ")
