import csv
import json
import re
from datetime import datetime
from io import StringIO
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from services import PeriodReport


def sanitize_csv_value(value: str) -> str:
    """
    Sanitize CSV values to prevent formula injection by prefixing dangerous patterns with tab.
    """
    if not value or value.strip() == "":
        return ""

    value = value.strip()

    formula_triggers = ("=", "+", "-", "@", "\t", "\r")

    if value.startswith(formula_triggers):
        return "\t" + value

    dangerous_patterns = [
        r"^cmd\s*",
        r"^powershell\s*",
        r"^bash\s*",
        r"^sh\s*",
        r"^http[s]?://",
    ]

    for pattern in dangerous_patterns:
        if re.match(pattern, value, re.IGNORECASE):
            return "\t" + value

    return value


def report_filename(report: "PeriodReport", extension: str) -> str:
    interval = report.resolved.interval
    return (
        f"{interval.granularity.value}-report-"
        f"{interval.start.isoformat()}_{interval.end.isoformat()}.{extension}"
    )


def export_report_csv(report: "PeriodReport") -> str:
    current = report.current
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(["Financial Report Summary"])
    writer.writerow(["Period", "Income", "Expenses", "Balance"])
    writer.writerow(
        [
            report.resolved.interval.label,
            f"{current.income:.2f}",
            f"{current.expense:.2f}",
            f"{current.net:.2f}",
        ]
    )
    if current.category_breakdown:
        writer.writerow([])
        writer.writerow(["Category Breakdown"])
        writer.writerow(["Category", "Amount"])
        for item in current.category_breakdown:
            writer.writerow([sanitize_csv_value(item.category), f"{item.amount:.2f}"])
    return output.getvalue()


def export_report_json(report: "PeriodReport", generated_at: datetime) -> str:
    current = report.current
    payload = {
        "period": report.resolved.interval.label,
        "type": report.resolved.interval.granularity.value,
        "start": report.resolved.interval.start.isoformat(),
        "end": report.resolved.interval.end.isoformat(),
        "income": f"{current.income:.2f}",
        "expenses": f"{current.expense:.2f}",
        "balance": f"{current.net:.2f}",
        "categories": [
            {"category": item.category, "amount": f"{item.amount:.2f}"}
            for item in current.category_breakdown
        ],
        "insights": [
            {
                "kind": insight.kind.value,
                "title": insight.title,
                "message": insight.message,
                "suggestion": insight.suggestion,
            }
            for insight in report.insights
        ],
        "generatedAt": generated_at.isoformat(),
    }
    return json.dumps(payload, indent=2)
