"""Tool call status lines for the assistant's "thinking steps" panel.

Maps a raw ToolExecutionRecord to a short ToolStatusLine. Formatting is a
registry of per-tool functions with an explicit default for unknown
tools. Pure presentation: no I/O, and never raises on malformed records.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from typing import Any

from shipsight.assistant.models import StatusIcon, ToolExecutionRecord, ToolStatusLine

logger = logging.getLogger(__name__)

Formatter = Callable[[Mapping[str, Any], Mapping[str, Any]], ToolStatusLine]

# Field name -> plural human label
FIELD_LABELS: dict[str, str] = {
    "carrier_name": "carriers",
    "origin_state": "origin states",
    "destination_state": "destination states",
    "origin_city": "origin cities",
    "destination_city": "destination cities",
    "mode_name": "shipping modes",
    "status": "statuses",
    "customer_name": "customers",
    "service_type": "service types",
}

# Tool name -> failure label, for tools whose failures read better than "Failed: <tool>"
_FAILURE_LABELS: dict[str, Callable[[Mapping[str, Any]], str]] = {
    "explore_field": lambda inp: f"Failed: {_text(inp.get('field_name'))}",
    "preview_grouping": lambda inp: "Preview failed",
    "preview_aggregation": lambda inp: "Preview failed",
}


def humanize_field(field: str) -> str:
    return FIELD_LABELS.get(field) or field.replace("_", " ")


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _number(value: Any) -> float:
    """Coerce to a finite number; anything unusable is 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    return number if math.isfinite(number) else 0


def _count(value: Any) -> int:
    return int(_number(value))


def _plural(n: int, word: str, plural: str | None = None) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {plural or word + 's'}"


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class ToolCallReporter:
    """Registry of tool-name -> formatter with a first-class default entry."""

    def __init__(self) -> None:
        self._formatters: dict[str, Formatter] = {}

    def register(self, name: str, *aliases: str) -> Callable[[Formatter], Formatter]:
        """Decorator registering a formatter under a tool name and aliases."""

        def decorator(fn: Formatter) -> Formatter:
            for tool in (name, *aliases):
                self._formatters[tool] = fn
            return fn

        return decorator

    def known_tools(self) -> list[str]:
        return sorted(self._formatters)

    def format(self, record: ToolExecutionRecord | Mapping[str, Any]) -> ToolStatusLine:
        """Format one tool execution. Total over any input."""
        if not isinstance(record, ToolExecutionRecord):
            record = ToolExecutionRecord.from_dict(record)

        name = _text(record.tool_name)
        tool_input = record.tool_input if isinstance(record.tool_input, Mapping) else {}
        result = record.result if isinstance(record.result, Mapping) else {}

        error = result.get("error")
        if error:
            return self._failure(name, tool_input, error)

        formatter = self._formatters.get(name)
        if formatter is None:
            return default_status(name)
        try:
            return formatter(tool_input, result)
        except Exception:
            logger.exception("Tool status formatter for %s failed", name)
            return default_status(name)

    @staticmethod
    def _failure(name: str, tool_input: Mapping[str, Any], error: Any) -> ToolStatusLine:
        label_for = _FAILURE_LABELS.get(name)
        label = label_for(tool_input) if label_for else f"Failed: {name}"
        return ToolStatusLine(StatusIcon.ERROR, label, _text(error))


def default_status(name: str) -> ToolStatusLine:
    """Unknown tools: the raw tool name, no detail."""
    return ToolStatusLine(StatusIcon.TOOL, name, "")


reporter = ToolCallReporter()


def format_tool_execution(record: ToolExecutionRecord | Mapping[str, Any]) -> ToolStatusLine:
    return reporter.format(record)


# ---------------------------------------------------------------------------
# Discovery tools
# ---------------------------------------------------------------------------


@reporter.register("explore_field")
def _explore_field(inp: Mapping[str, Any], res: Mapping[str, Any]) -> ToolStatusLine:
    field = _text(inp.get("field_name"))
    count = _count(res.get("unique_count"))
    coverage = _number(res.get("populated_percent"))
    if field in FIELD_LABELS:
        label = f"Found {count} {FIELD_LABELS[field]} in your data"
    else:
        label = f"Found {count} unique {humanize_field(field)} values"
    detail = ""
    if coverage < 80:
        detail = f"({round(100 - coverage)}% of records missing this field)"
    return ToolStatusLine(StatusIcon.SEARCH, label, detail)


@reporter.register("get_customer_context")
def _customer_context(inp: Mapping[str, Any], res: Mapping[str, Any]) -> ToolStatusLine:
    return ToolStatusLine(StatusIcon.SEARCH, "Loading customer profile", "Fetching business context")


@reporter.register("query_schema")
def _query_schema(inp: Mapping[str, Any], res: Mapping[str, Any]) -> ToolStatusLine:
    return ToolStatusLine(StatusIcon.SEARCH, "Checking data structure", "Finding available columns")


@reporter.register("discover_tables")
def _discover_tables(inp: Mapping[str, Any], res: Mapping[str, Any]) -> ToolStatusLine:
    count = _count(res.get("count"))
    return ToolStatusLine(StatusIcon.SEARCH, "Looking up available data", f"{_plural(count, 'table')} found")


@reporter.register("discover_fields")
def _discover_fields(inp: Mapping[str, Any], res: Mapping[str, Any]) -> ToolStatusLine:
    table = _text(inp.get("table_name")) or "table"
    count = _count(res.get("field_count"))
    return ToolStatusLine(StatusIcon.SEARCH, f"Reading {table} fields", f"{_plural(count, 'field')} available")


@reporter.register("search_text")
def _search_text(inp: Mapping[str, Any], res: Mapping[str, Any]) -> ToolStatusLine:
    query = _text(inp.get("query"))
    matches = _count(res.get("total_matches"))
    return ToolStatusLine(StatusIcon.SEARCH, f'Searching for "{query}"', f"{_plural(matches, 'match', 'matches')} found")


# ---------------------------------------------------------------------------
# Query and analysis tools
# ---------------------------------------------------------------------------


@reporter.register("preview_grouping", "preview_aggregation")
def _preview_grouping(inp: Mapping[str, Any], res: Mapping[str, Any]) -> ToolStatusLine:
    group_by = _text(inp.get("group_by"))
    groups = _count(res.get("total_groups"))
    return ToolStatusLine(
        StatusIcon.CHART,
        f"Grouped by {humanize_field(group_by)}",
        f"{groups} categories ready to visualize",
    )


@reporter.register("query_table")
def _query_table(inp: Mapping[str, Any], res: Mapping[str, Any]) -> ToolStatusLine:
    table = _text(inp.get("table_name")) or _text(res.get("table")) or "data"
    rows = _count(res.get("row_count"))
    return ToolStatusLine(StatusIcon.SEARCH, f"Querying {table}", f"{_plural(rows, 'row')} returned")


@reporter.register("aggregate")
def _aggregate(inp: Mapping[str, Any], res: Mapping[str, Any]) -> ToolStatusLine:
    aggregation = _text(inp.get("aggregation")) or "total"
    metric = humanize_field(_text(inp.get("metric")))
    group_by = humanize_field(_text(inp.get("group_by")))
    rows = _count(res.get("row_count"))
    label = f"Calculating {aggregation} {metric}".rstrip()
    if group_by:
        label += f" by {group_by}"
    return ToolStatusLine(StatusIcon.CHART, label, f"{_plural(rows, 'group')} computed")


@reporter.register("compare_periods")
def _compare_periods(inp: Mapping[str, Any], res: Mapping[str, Any]) -> ToolStatusLine:
    metric = humanize_field(_text(inp.get("metric")))
    change = _number(res.get("change_percent"))
    return ToolStatusLine(
        StatusIcon.CHART,
        f"Comparing {metric or 'metric'} across periods",
        f"{change:+.1f}% change",
    )


@reporter.register("detect_anomalies")
def _detect_anomalies(inp: Mapping[str, Any], res: Mapping[str, Any]) -> ToolStatusLine:
    anomalies = res.get("anomalies")
    count = len(anomalies) if isinstance(anomalies, list) else 0
    if count:
        return ToolStatusLine(StatusIcon.WARNING, "Unusual patterns found", _plural(count, "anomaly", "anomalies"))
    return ToolStatusLine(StatusIcon.SEARCH, "Scanning for anomalies", "Nothing unusual found")


@reporter.register("generate_visualization")
def _generate_visualization(inp: Mapping[str, Any], res: Mapping[str, Any]) -> ToolStatusLine:
    return ToolStatusLine(StatusIcon.CHART, "Building visualization", "Creating chart configuration")


# ---------------------------------------------------------------------------
# Report building tools
# ---------------------------------------------------------------------------


@reporter.register("create_report_draft")
def _create_report_draft(inp: Mapping[str, Any], res: Mapping[str, Any]) -> ToolStatusLine:
    name = _text(inp.get("name")) or "Untitled report"
    return ToolStatusLine(StatusIcon.CHART, "Started report draft", name)


@reporter.register("add_section")
def _add_section(inp: Mapping[str, Any], res: Mapping[str, Any]) -> ToolStatusLine:
    section = humanize_field(_text(inp.get("section_type"))) or "section"
    title = _text(inp.get("title"))
    total = _count(res.get("total_sections"))
    label = f"Added {section}: {title}" if title else f"Added {section}"
    return ToolStatusLine(StatusIcon.CHART, label, f"{_plural(total, 'section')} in report")


@reporter.register("finalize_report")
def _finalize_report(inp: Mapping[str, Any], res: Mapping[str, Any]) -> ToolStatusLine:
    validation = res.get("validation")
    if not isinstance(validation, Mapping):
        validation = {}
    if validation.get("valid"):
        return ToolStatusLine(StatusIcon.SUCCESS, "Report ready", "All validations passed")
    errors = validation.get("errors")
    if not isinstance(errors, list):
        errors = []
    return ToolStatusLine(StatusIcon.WARNING, "Validation issues", ", ".join(_text(e) for e in errors))


# ---------------------------------------------------------------------------
# Conversation and learning tools
# ---------------------------------------------------------------------------


@reporter.register("ask_clarification")
def _ask_clarification(inp: Mapping[str, Any], res: Mapping[str, Any]) -> ToolStatusLine:
    return ToolStatusLine(StatusIcon.QUESTION, "Need more info", _text(inp.get("question")))


@reporter.register("emit_learning", "learn_terminology")
def _emit_learning(inp: Mapping[str, Any], res: Mapping[str, Any]) -> ToolStatusLine:
    key = _text(inp.get("key") or inp.get("term"))
    value = _text(inp.get("value") or inp.get("meaning"))
    return ToolStatusLine(StatusIcon.LEARNING, f'Learned: "{key}"', f"Means: {value}")


@reporter.register("learn_preference")
def _learn_preference(inp: Mapping[str, Any], res: Mapping[str, Any]) -> ToolStatusLine:
    key = humanize_field(_text(inp.get("key")))
    value = _text(inp.get("value"))
    return ToolStatusLine(StatusIcon.LEARNING, f"Noted preference: {key}", value)


@reporter.register("record_correction")
def _record_correction(inp: Mapping[str, Any], res: Mapping[str, Any]) -> ToolStatusLine:
    original = _text(inp.get("original"))
    corrected = _text(inp.get("corrected"))
    return ToolStatusLine(StatusIcon.LEARNING, "Correction noted", f'"{original}" -> "{corrected}"')
