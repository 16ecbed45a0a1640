"""Field-difference computation and rendering tests."""

from __future__ import annotations

from sis_merge_verifier.action_execution import (
    FieldDifference,
    FieldKind,
    FieldStatus,
    FillPlan,
    FillResult,
    FillStep,
    SkippedField,
    compute_field_differences,
    has_changes,
    render_field_differences,
)


def _plan() -> FillPlan:
    return FillPlan(
        steps=(
            FillStep("title", FieldKind.TEXT, "QA title", "Title"),
            FillStep("credits", FieldKind.NUMBER, "3", "Credits"),
            FillStep("room", FieldKind.TEXT, "QA room", "Room"),
        ),
        skipped=(SkippedField("ethosId", "protected field"), SkippedField("ghost", "hidden")),
    )


def test_differences_follow_plan_order_and_statuses() -> None:
    differences = compute_field_differences(
        before={"title": "Old", "credits": "3", "room": "R1", "ethosId": "E-1", "extra": "a"},
        after={"title": "QA title", "credits": "3 ", "room": "R1", "ethosId": "E-1", "extra": "b"},
        plan=_plan(),
        fill_results={
            "title": FillResult("title", True),
            "credits": FillResult("credits", True),
            "room": FillResult("room", False, FieldStatus.DISABLED, "Field is read-only"),
        },
    )

    assert differences == (
        FieldDifference("title", "Old", "QA title", FieldStatus.UPDATED),
        FieldDifference("credits", "3", "3 ", FieldStatus.UNABLE, "value unchanged"),
        FieldDifference("room", "R1", "R1", FieldStatus.DISABLED, "Field is read-only"),
        FieldDifference("ethosId", "E-1", "E-1", FieldStatus.SKIPPED, "protected field"),
        FieldDifference("extra", "a", "b", FieldStatus.UPDATED),
    )
    assert has_changes(differences) is True


def test_no_updates_means_no_changes() -> None:
    differences = (FieldDifference("a", "1", "1", FieldStatus.UNABLE, "value unchanged"),)

    assert has_changes(differences) is False


def test_render_includes_legend_and_escaped_cells() -> None:
    rendered = render_field_differences(
        (
            FieldDifference("title", "A|B", "line1\nline2", FieldStatus.UPDATED),
            FieldDifference("ethosId", None, None, FieldStatus.SKIPPED, "protected field"),
        ),
        school_id="school1",
        action="update",
    )

    assert rendered.startswith("Field differences for school1 (update)")
    assert "Legend:" in rendered
    assert "| title | A\\|B | line1 line2 | ✅ updated |  |" in rendered
    assert "| ethosId | (none) | (none) | ⏭️ skipped | protected field |" in rendered


def test_render_empty_table() -> None:
    rendered = render_field_differences((), school_id="school1", action="create")

    assert "| _no fields compared_ | | | | |" in rendered
