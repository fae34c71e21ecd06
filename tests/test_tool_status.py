"""Tests for ToolCallReporter status lines."""

import pytest

from shipsight.assistant.models import StatusIcon, ToolExecutionRecord, ToolStatusLine
from shipsight.assistant.tool_status import (
    ToolCallReporter,
    default_status,
    format_tool_execution,
    humanize_field,
    reporter,
)


def _record(tool_name: str, tool_input: dict | None = None, result: dict | None = None) -> ToolExecutionRecord:
    return ToolExecutionRecord(tool_name=tool_name, tool_input=tool_input or {}, result=result or {})


class TestHumanizeField:
    def test_known_field(self):
        assert humanize_field("carrier_name") == "carriers"
        assert humanize_field("origin_city") == "origin cities"

    def test_unknown_field_replaces_separators(self):
        assert humanize_field("freight_class_code") == "freight class code"


class TestExploreField:
    def test_known_field_label(self):
        line = format_tool_execution(
            _record("explore_field", {"field_name": "carrier_name"}, {"unique_count": 14, "populated_percent": 99})
        )
        assert line == ToolStatusLine(StatusIcon.SEARCH, "Found 14 carriers in your data", "")

    def test_unknown_field_label(self):
        line = format_tool_execution(
            _record("explore_field", {"field_name": "freight_class"}, {"unique_count": 7, "populated_percent": 100})
        )
        assert line.label == "Found 7 unique freight class values"

    def test_low_coverage_detail(self):
        line = format_tool_execution(
            _record("explore_field", {"field_name": "mode_name"}, {"unique_count": 3, "populated_percent": 62.4})
        )
        assert line.detail == "(38% of records missing this field)"

    def test_error_is_failure_styled_with_verbatim_text(self):
        error = 'column "carier_name" does not exist'
        line = format_tool_execution(
            _record("explore_field", {"field_name": "carier_name"}, {"success": False, "error": error})
        )
        assert line.is_failure is True
        assert line.icon is StatusIcon.ERROR
        assert line.label == "Failed: carier_name"
        assert line.detail == error

    def test_missing_fields_default_to_zero(self):
        line = format_tool_execution(_record("explore_field"))
        assert line.label == "Found 0 unique  values"
        assert line.detail == "(100% of records missing this field)"
        assert line.is_failure is False


class TestUnknownTools:
    def test_fallback_label_is_raw_tool_name(self):
        line = format_tool_execution(_record("rebuild_lane_index", {"x": 1}, {"ok": True}))
        assert line == ToolStatusLine(StatusIcon.TOOL, "rebuild_lane_index", "")
        assert line == default_status("rebuild_lane_index")

    def test_unknown_tool_error_still_failure_styled(self):
        line = format_tool_execution(_record("mystery_tool", result={"error": "boom"}))
        assert line.is_failure is True
        assert line.label == "Failed: mystery_tool"
        assert line.detail == "boom"


class TestKnownTools:
    def test_preview_grouping(self):
        line = format_tool_execution(
            _record("preview_grouping", {"group_by": "destination_state"}, {"total_groups": 31})
        )
        assert line.icon is StatusIcon.CHART
        assert line.label == "Grouped by destination states"
        assert line.detail == "31 categories ready to visualize"

    def test_preview_aggregation_alias(self):
        line = format_tool_execution(_record("preview_aggregation", {"group_by": "lane_id"}, {"total_groups": 2}))
        assert line.label == "Grouped by lane id"

    def test_preview_error_label(self):
        line = format_tool_execution(_record("preview_grouping", result={"error": "timeout"}))
        assert line.label == "Preview failed"
        assert line.detail == "timeout"

    def test_emit_learning(self):
        line = format_tool_execution(_record("emit_learning", {"key": "LTL", "value": "less than truckload"}))
        assert line == ToolStatusLine(StatusIcon.LEARNING, 'Learned: "LTL"', "Means: less than truckload")

    def test_learn_terminology_alias(self):
        line = format_tool_execution(_record("learn_terminology", {"term": "FTL", "meaning": "full truckload"}))
        assert line.label == 'Learned: "FTL"'
        assert line.detail == "Means: full truckload"

    def test_finalize_report_valid(self):
        line = format_tool_execution(_record("finalize_report", result={"validation": {"valid": True}}))
        assert line == ToolStatusLine(StatusIcon.SUCCESS, "Report ready", "All validations passed")

    def test_finalize_report_invalid(self):
        line = format_tool_execution(
            _record("finalize_report", result={"validation": {"valid": False, "errors": ["no title", "empty chart"]}})
        )
        assert line.icon is StatusIcon.WARNING
        assert line.detail == "no title, empty chart"
        assert line.is_failure is False

    def test_finalize_report_without_validation(self):
        line = format_tool_execution(_record("finalize_report"))
        assert line.label == "Validation issues"
        assert line.detail == ""

    def test_ask_clarification(self):
        line = format_tool_execution(_record("ask_clarification", {"question": "Which date range?"}))
        assert line == ToolStatusLine(StatusIcon.QUESTION, "Need more info", "Which date range?")

    @pytest.mark.parametrize(
        "tool, label",
        [
            ("get_customer_context", "Loading customer profile"),
            ("query_schema", "Checking data structure"),
            ("generate_visualization", "Building visualization"),
        ],
    )
    def test_static_lines(self, tool, label):
        assert format_tool_execution(_record(tool)).label == label

    def test_query_table(self):
        line = format_tool_execution(_record("query_table", {"table_name": "shipment"}, {"row_count": 1}))
        assert line.label == "Querying shipment"
        assert line.detail == "1 row returned"

    def test_aggregate(self):
        line = format_tool_execution(
            _record(
                "aggregate",
                {"metric": "retail", "aggregation": "sum", "group_by": "carrier_name"},
                {"row_count": 12},
            )
        )
        assert line.label == "Calculating sum retail by carriers"
        assert line.detail == "12 groups computed"

    def test_search_text_pluralizes(self):
        line = format_tool_execution(_record("search_text", {"query": "Dallas"}, {"total_matches": 3}))
        assert line.detail == "3 matches found"

    def test_compare_periods(self):
        line = format_tool_execution(
            _record("compare_periods", {"metric": "retail"}, {"change_percent": -12.34})
        )
        assert line.label == "Comparing retail across periods"
        assert line.detail == "-12.3% change"

    def test_detect_anomalies(self):
        found = format_tool_execution(_record("detect_anomalies", result={"anomalies": [{}, {}]}))
        assert found.icon is StatusIcon.WARNING
        assert found.detail == "2 anomalies"
        none = format_tool_execution(_record("detect_anomalies", result={"anomalies": []}))
        assert none.detail == "Nothing unusual found"

    def test_add_section(self):
        line = format_tool_execution(
            _record("add_section", {"section_type": "bar_chart", "title": "Spend by carrier"}, {"total_sections": 2})
        )
        assert line.label == "Added bar chart: Spend by carrier"
        assert line.detail == "2 sections in report"

    def test_record_correction(self):
        line = format_tool_execution(_record("record_correction", {"original": "revenue", "corrected": "spend"}))
        assert line.detail == '"revenue" -> "spend"'


class TestMalformedRecords:
    def test_camel_case_dict(self):
        line = format_tool_execution(
            {
                "toolName": "explore_field",
                "toolInput": {"field_name": "status"},
                "result": {"unique_count": 5, "populated_percent": 100},
                "timestamp": "2026-01-01T00:00:00Z",
                "duration": 120,
            }
        )
        assert line.label == "Found 5 statuses in your data"

    def test_snake_case_dict(self):
        line = format_tool_execution({"tool_name": "query_schema", "tool_input": None, "result": None})
        assert line.label == "Checking data structure"

    @pytest.mark.parametrize("record", [None, 42, "explore_field", [], {}])
    def test_garbage_never_raises(self, record):
        line = format_tool_execution(record)
        assert isinstance(line, ToolStatusLine)

    def test_non_mapping_result(self):
        line = format_tool_execution({"toolName": "query_table", "result": "oops"})
        assert line.detail == "0 rows returned"

    def test_unusable_numbers_become_zero(self):
        line = format_tool_execution(
            _record("explore_field", {"field_name": "carrier_name"}, {"unique_count": "nan", "populated_percent": None})
        )
        assert line.label == "Found 0 carriers in your data"

    def test_numeric_strings_are_used(self):
        line = format_tool_execution(_record("query_table", {"table_name": "shipment"}, {"row_count": "25"}))
        assert line.detail == "25 rows returned"

    def test_empty_error_is_not_a_failure(self):
        line = format_tool_execution(_record("query_schema", result={"error": ""}))
        assert line.is_failure is False


class TestRegistry:
    def test_register_new_tool(self):
        local = ToolCallReporter()

        @local.register("estimate_transit", "eta")
        def _eta(inp, res):
            return ToolStatusLine(StatusIcon.SEARCH, "Estimating transit", f"{res.get('days', 0)} days")

        assert local.format(_record("estimate_transit", result={"days": 3})).detail == "3 days"
        assert local.format(_record("eta")).label == "Estimating transit"
        assert local.known_tools() == ["estimate_transit", "eta"]
        # The module registry is untouched
        assert "eta" not in reporter.known_tools()

    def test_broken_formatter_falls_back(self):
        local = ToolCallReporter()

        @local.register("flaky")
        def _flaky(inp, res):
            raise KeyError("missing")

        assert local.format(_record("flaky")) == default_status("flaky")

    def test_default_registry_covers_catalog(self):
        known = reporter.known_tools()
        for tool in (
            "explore_field",
            "preview_grouping",
            "emit_learning",
            "finalize_report",
            "ask_clarification",
            "get_customer_context",
            "query_schema",
            "generate_visualization",
        ):
            assert tool in known
