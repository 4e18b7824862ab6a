"""
Chart rendering for time statistics.

Charts are native Excel charts written with openpyxl: a data sheet with
hours per category plus a bar, pie or doughnut chart drawn from it.
"""

from io import BytesIO
from pathlib import Path
from typing import Literal, Protocol

from openpyxl import Workbook
from openpyxl.chart import BarChart, DoughnutChart, PieChart, Reference
from openpyxl.chart.series import DataPoint
from openpyxl.styles import Font

from core.config import CATEGORY_LABELS
from models.events import Category, PeriodRange, TimeStats

ChartType = Literal["bar", "pie", "doughnut"]

CHART_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# Series order and fill colors (green, amber, gray)
CHART_CATEGORIES = [Category.PROD, Category.ADMIN, Category.NONPROD]
CHART_COLORS = {
    Category.PROD: "10B981",
    Category.ADMIN: "F59E0B",
    Category.NONPROD: "6B7280",
}


class ChartRenderer(Protocol):
    def render(self, stats: TimeStats, label: str, chart_type: ChartType = "bar") -> bytes: ...


def default_chart_type(period_range: PeriodRange) -> ChartType:
    """Doughnut for a single day, bar for longer ranges."""
    return "doughnut" if period_range.is_single_day else "bar"


def to_hours(minutes: float) -> float:
    return round(minutes / 60, 1)


def write_daily_sheet(ws, stats: TimeStats):
    """
    Write the daily breakdown table used by the bar chart.

    Row 1: Date | Productive | Admin/Rest | Non-productive
    Rows 2+: one row per day, values in hours
    """
    headers = ["Date"] + [CATEGORY_LABELS[category] for category in CHART_CATEGORIES]
    for col_idx, header in enumerate(headers, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = Font(bold=True)

    buckets = sorted(stats.daily_breakdown.values(), key=lambda bucket: bucket.date)
    for row_idx, bucket in enumerate(buckets, start=2):
        ws.cell(row=row_idx, column=1, value=bucket.display_label)
        for col_idx, category in enumerate(CHART_CATEGORIES, start=2):
            ws.cell(row=row_idx, column=col_idx, value=to_hours(getattr(bucket, category.value)))
    return len(buckets)


def write_totals_sheet(ws, stats: TimeStats) -> list[Category]:
    """
    Write category totals used by pie/doughnut charts.

    Categories with no time are left out so the chart has no empty slices.
    """
    ws.cell(row=1, column=1, value="Category").font = Font(bold=True)
    ws.cell(row=1, column=2, value="Hours").font = Font(bold=True)

    included = [category for category in CHART_CATEGORIES if to_hours(stats.minutes(category)) > 0]
    for row_idx, category in enumerate(included, start=2):
        ws.cell(row=row_idx, column=1, value=CATEGORY_LABELS[category])
        ws.cell(row=row_idx, column=2, value=to_hours(stats.minutes(category)))
    return included


def build_bar_chart(ws, stats: TimeStats, label: str) -> BarChart:
    rows = write_daily_sheet(ws, stats)

    chart = BarChart()
    chart.type = "col"
    chart.grouping = "stacked"
    chart.overlap = 100
    chart.title = f"Time Distribution - {label}"
    chart.y_axis.title = "Hours"
    chart.width = 24
    chart.height = 12

    data = Reference(ws, min_col=2, max_col=len(CHART_CATEGORIES) + 1, min_row=1, max_row=rows + 1)
    categories = Reference(ws, min_col=1, min_row=2, max_row=rows + 1)
    chart.add_data(data, titles_from_data=True)
    chart.set_categories(categories)

    for series, category in zip(chart.series, CHART_CATEGORIES):
        series.graphicalProperties.solidFill = CHART_COLORS[category]
        series.graphicalProperties.line.solidFill = CHART_COLORS[category]
    return chart


def build_pie_chart(ws, stats: TimeStats, label: str, chart_type: ChartType) -> PieChart:
    included = write_totals_sheet(ws, stats)

    chart = DoughnutChart() if chart_type == "doughnut" else PieChart()
    chart.title = f"Time Distribution - {label}"
    chart.width = 16
    chart.height = 12

    data = Reference(ws, min_col=2, min_row=1, max_row=len(included) + 1)
    categories = Reference(ws, min_col=1, min_row=2, max_row=len(included) + 1)
    chart.add_data(data, titles_from_data=True)
    chart.set_categories(categories)

    if chart.series:
        points = []
        for idx, category in enumerate(included):
            point = DataPoint(idx=idx)
            point.graphicalProperties.solidFill = CHART_COLORS[category]
            points.append(point)
        chart.series[0].data_points = points
    return chart


class ExcelChartRenderer:
    """Renders stats as an .xlsx workbook holding a native chart."""

    media_type = CHART_MEDIA_TYPE

    def render(self, stats: TimeStats, label: str, chart_type: ChartType = "bar") -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = "Time Stats"

        if chart_type in ("pie", "doughnut"):
            chart = build_pie_chart(ws, stats, label, chart_type)
        else:
            chart = build_bar_chart(ws, stats, label)
        ws.add_chart(chart, "G2")

        buffer = BytesIO()
        wb.save(buffer)
        return buffer.getvalue()


def save_chart(content: bytes, output_path: Path) -> Path:
    """Write rendered chart bytes to disk."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(content)
    print(f"Saved chart to: {output_path}")
    return output_path
