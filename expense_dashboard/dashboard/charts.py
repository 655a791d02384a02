"""
Chart helpers (pivot -> Altair line chart).

One line per selected project in its catalog color, plus an optional
dashed line for the month total.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

import altair as alt
import pandas as pd

from expense_dashboard.models.expense import PivotResult, ProjectCatalog

alt.data_transformers.disable_max_rows()

TOTAL_SERIES = "Total"


def format_currency(value: Decimal | float, symbol: str = "$") -> str:
    return f"{symbol}{float(value):,.2f}"


def axis_labels(pivot: PivotResult) -> List[str]:
    """Month labels for the X axis; the year is appended when the data spans several."""
    years = {row.month_key[:4] for row in pivot.rows}
    if len(years) <= 1:
        return [row.month_label for row in pivot.rows]
    return [f"{row.month_label} {row.month_key[2:4]}" for row in pivot.rows]


def pivot_to_frame(pivot: PivotResult, projects: Sequence[str]) -> pd.DataFrame:
    """Long-form frame: one row per (month, series) with a float amount."""
    labels = axis_labels(pivot)
    records: List[Dict[str, Any]] = []
    for label, row in zip(labels, pivot.rows):
        for project in projects:
            records.append({
                "month_key": row.month_key,
                "month": label,
                "series": project,
                "amount": float(row.amount_by_project.get(project, 0)),
            })
        records.append({
            "month_key": row.month_key,
            "month": label,
            "series": TOTAL_SERIES,
            "amount": float(row.total),
        })
    return pd.DataFrame.from_records(
        records, columns=["month_key", "month", "series", "amount"]
    )


def build_expense_chart(
    pivot: PivotResult,
    catalog: ProjectCatalog,
    selected_projects: Sequence[str],
    show_total: bool = True,
    height: int = 320,
) -> Optional[alt.LayerChart]:
    """
    Build the monthly expense chart.

    Returns None when there is nothing to draw (no rows, or every
    series switched off).
    """
    projects = [p for p in catalog.projects if p in selected_projects]
    if not pivot.rows or (not projects and not show_total):
        return None

    frame = pivot_to_frame(pivot, catalog.projects)
    month_order = axis_labels(pivot)
    x = alt.X("month:N", sort=month_order, title=None)
    y = alt.Y("amount:Q", title=None, axis=alt.Axis(format="~s"))
    tooltip = [
        alt.Tooltip("series:N", title="Proyecto"),
        alt.Tooltip("month:N", title="Mes"),
        alt.Tooltip("amount:Q", title="Monto", format="$,.2f"),
    ]

    layers = []
    if projects:
        layers.append(
            alt.Chart(frame[frame["series"].isin(projects)])
            .mark_line(point=alt.OverlayMarkDef(size=40), strokeWidth=3)
            .encode(
                x=x,
                y=y,
                color=alt.Color(
                    "series:N",
                    title="Proyecto",
                    scale=alt.Scale(
                        domain=projects,
                        range=[catalog.color_for(p) for p in projects],
                    ),
                ),
                tooltip=tooltip,
            )
        )
    if show_total:
        layers.append(
            alt.Chart(frame[frame["series"] == TOTAL_SERIES])
            .mark_line(
                point=alt.OverlayMarkDef(size=40, color=catalog.total_color),
                strokeWidth=3,
                strokeDash=[5, 5],
                color=catalog.total_color,
            )
            .encode(x=x, y=y, tooltip=tooltip)
        )

    return alt.layer(*layers).properties(height=height)


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()
