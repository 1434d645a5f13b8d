"""Human-readable rendering of match reviews and revenue summaries for CLI output."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from core.matching.models import MatchReview
from core.plans.catalog import FieldCatalog
from core.revenue.models import PlanProgress, RevenueSummary


def render_review(
    review: MatchReview,
    values: Mapping[str, float],
    catalog: FieldCatalog,
) -> str:
    """Render one-screen review of tokens, suggestions and paired values."""

    lines: list[str] = []
    lines.append("match_review:")
    lines.append(f"tokens={len(review.rows)} matched={len(review.mappings)}")

    for row in review.rows:
        if row.is_numeric:
            status = "value"
        elif row.suggested_field is not None:
            label = catalog.label_for(row.suggested_field) or row.suggested_field
            status = f"-> {row.suggested_field} ({label})"
        else:
            status = "unmatched"
        lines.append(f"  {row.text!r} conf={row.confidence:.0f} {status}")

    if values:
        lines.append("values:")
        for key in catalog.keys():
            if key in values:
                lines.append(f"  {key}={values[key]:g}")
    else:
        lines.append("values: none")
    return "\n".join(lines)


def render_summary(summary: RevenueSummary) -> str:
    lines = [
        "revenue_summary:",
        f"count={summary.count}",
        f"total={summary.total:.2f}",
        f"average={summary.average:.2f}",
        f"maximum={summary.maximum:.2f}",
        f"minimum={summary.minimum:.2f}",
    ]
    return "\n".join(lines)


def render_progress(rows: Sequence[PlanProgress]) -> str:
    if not rows:
        return "plan_progress: none"

    lines = ["plan_progress:"]
    for row in rows:
        mark = "met" if row.met else "below"
        lines.append(
            f"  {row.date.isoformat()} planned={row.planned:.2f} "
            f"actual={row.actual:.2f} percentage={row.percentage:.1f} {mark}"
        )
    return "\n".join(lines)
