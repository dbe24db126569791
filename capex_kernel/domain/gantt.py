"""
Gantt Projection -- read-only timeline view of the project structure.

Responsibility:
    Maps the structure to the row set consumed by the timeline renderer:
    one summary row per non-empty milestone followed by one child row per
    activity.

Architecture position:
    Kernel > Domain -- stateless and pure.  Never a source of truth: views
    recompute it whenever ``ProjectStructure.revision`` changes.

Invariants enforced:
    - Milestones with zero activities produce no row at all.
    - A summary row spans ``[min(activity start), max(activity end)]``.
    - Display-only defaults (missing end -> start + 1 day, missing start ->
      today) never flow back into the structure.
    - Every activity row ends at least one day after it starts; inverted
      or same-day spans are widened for display only.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from capex_kernel.domain.clock import Clock, SystemClock
from capex_kernel.domain.structure import Activity, ProjectStructure
from capex_kernel.domain.values import format_brl

MILESTONE_CATEGORY = "milestone"
ACTIVITY_CATEGORY = "activity"

GANTT_COLUMNS: tuple[tuple[str, str], ...] = (
    ("id", "string"),
    ("label", "string"),
    ("category", "string"),
    ("start", "date"),
    ("end", "date"),
    ("duration", "number"),
    ("percentComplete", "number"),
    ("parentId", "string"),
    ("tooltip", "string"),
)


@dataclass(frozen=True)
class GanttRow:
    """One bar of the timeline."""

    id: str
    label: str
    category: str
    start: date
    end: date
    duration: int | None = None
    percent_complete: int = 0
    parent_id: str | None = None
    tooltip: str = ""

    def as_list(self) -> list[Any]:
        return [
            self.id,
            self.label,
            self.category,
            self.start,
            self.end,
            self.duration,
            self.percent_complete,
            self.parent_id,
            self.tooltip,
        ]


def _activity_span(activity: Activity, today: date) -> tuple[date, date]:
    start = activity.start or today
    end = activity.end or start
    return start, max(end, start + timedelta(days=1))


def _activity_tooltip(activity: Activity) -> str:
    lines = [f"Total CAPEX: {format_brl(activity.total_amount)}"]
    lines.append(f"PEP: {activity.pep_code or '-'}")
    lines.extend(f"{line.year}: {format_brl(line.amount)}" for line in activity.year_lines)
    return "<br/>".join(lines)


def project_gantt(
    structure: ProjectStructure, *, clock: Clock | None = None
) -> tuple[GanttRow, ...]:
    """Project the structure onto timeline rows."""
    today = (clock or SystemClock()).today()
    rows: list[GanttRow] = []
    for i, milestone in enumerate(structure.milestones, start=1):
        if not milestone.activities:
            continue
        summary_id = f"ms-{i}"
        child_rows: list[GanttRow] = []
        for j, activity in enumerate(milestone.activities):
            start, end = _activity_span(activity, today)
            child_rows.append(
                GanttRow(
                    id=f"{summary_id}-{j}",
                    label=activity.title or f"Activity {j + 1}",
                    category=ACTIVITY_CATEGORY,
                    start=start,
                    end=end,
                    parent_id=summary_id,
                    tooltip=_activity_tooltip(activity),
                )
            )
        rows.append(
            GanttRow(
                id=summary_id,
                label=milestone.name,
                category=MILESTONE_CATEGORY,
                start=min(r.start for r in child_rows),
                end=max(r.end for r in child_rows),
                tooltip=milestone.name,
            )
        )
        rows.extend(child_rows)
    return tuple(rows)


def as_dataset(rows: Sequence[GanttRow]) -> dict[str, Any]:
    """Rows-and-columns dataset for the timeline sink."""
    return {
        "columns": [{"id": name, "type": kind} for name, kind in GANTT_COLUMNS],
        "rows": [row.as_list() for row in rows],
    }


def chart_height(rows: Sequence[GanttRow]) -> int:
    return max(200, len(rows) * 40 + 40)
