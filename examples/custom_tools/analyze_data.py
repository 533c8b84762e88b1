"""
Example custom tool.

Copy this file into the configured custom tools directory
(``tools.customToolsDir``, ``./custom-tools`` by default) and it is
registered at startup as ``analyze_data``.
"""

from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from mcp_template_server.models.item import utc_timestamp

METRICS = {
    "average": lambda values: sum(values) / len(values),
    "sum": sum,
    "min": min,
    "max": max,
    "count": len,
}


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _period_key(moment: datetime, period: str) -> str:
    if period == "hour":
        return moment.strftime("%Y-%m-%d-%H")
    if period == "day":
        return moment.strftime("%Y-%m-%d")
    if period == "week":
        return f"{moment:%Y-%m}-W{moment.day // 7}"
    if period == "month":
        return moment.strftime("%Y-%m")
    raise ValueError(f"Unknown period: {period}")


def group_by_period(data: List[Dict[str, Any]], period: str, metric: str) -> Dict[str, Any]:
    """Apply ``metric`` to the values of each time period."""
    groups: Dict[str, List[float]] = defaultdict(list)
    for point in data:
        key = _period_key(_parse_timestamp(point["timestamp"]), period)
        groups[key].append(point["value"])
    return {key: METRICS[metric](values) for key, values in groups.items()}


async def analyze_data(args: Dict[str, Any]) -> Dict[str, Any]:
    data = args.get("data") or []
    metric = args.get("metric")
    group_by: Optional[str] = args.get("groupBy")

    if not data:
        return {"success": False, "error": "No data provided"}

    if metric not in METRICS:
        raise ValueError(f"Unknown metric: {metric}")

    values = [point["value"] for point in data]
    grouped = group_by_period(data, group_by, metric) if group_by else None

    return {
        "success": True,
        "metric": metric,
        "result": METRICS[metric](values),
        "dataPoints": len(data),
        "groupedResults": grouped,
        "timestamp": utc_timestamp(),
    }


TOOL = {
    "name": "analyze_data",
    "description": "Analyze data and generate insights",
    "inputSchema": {
        "type": "object",
        "properties": {
            "data": {
                "type": "array",
                "description": "Array of data points to analyze",
                "items": {
                    "type": "object",
                    "properties": {
                        "value": {"type": "number"},
                        "timestamp": {"type": "string"}
                    }
                }
            },
            "metric": {
                "type": "string",
                "description": "Metric to calculate",
                "enum": ["average", "sum", "min", "max", "count"]
            },
            "groupBy": {
                "type": "string",
                "description": "Group data by time period",
                "enum": ["hour", "day", "week", "month"]
            }
        },
        "required": ["data", "metric"]
    },
    "handler": analyze_data,
}
