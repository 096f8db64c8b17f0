"""Tests for the plan model and the plan warning analyzer."""

import json

import pytest

from dbexplorer_mcp.services.plan_analyzer import extract_warnings, format_number
from dbexplorer_mcp.services.plan_model import (
    PlanNode,
    parse_explain_output,
    unwrap_explain_result,
)


class TestPlanNode:
    """Tests for PlanNode construction."""

    def test_from_dict_reads_fields(self):
        node = PlanNode.from_dict({
            "Node Type": "Sort",
            "Sort Key": ["o.created_at DESC"],
            "Plan Rows": 600,
            "Total Cost": 88.25,
            "Plans": [{"Node Type": "Seq Scan", "Relation Name": "orders", "Filter": "(id > 5)"}],
        })

        assert node.node_type == "Sort"
        assert node.sort_keys == ("o.created_at DESC",)
        assert node.estimated_rows == 600
        assert node.total_cost == 88.25
        assert len(node.children) == 1
        child = node.children[0]
        assert child.relation_name == "orders"
        assert child.filter == "(id > 5)"
        assert child.estimated_rows == 0
        assert child.children == ()

    def test_from_dict_unwraps_plan_envelope(self):
        node = PlanNode.from_dict({
            "Plan": {"Node Type": "Result", "Plan Rows": 1},
            "Planning Time": 0.05,
        })
        assert node.node_type == "Result"
        assert node.estimated_rows == 1

    def test_walk_is_pre_order(self, seq_scan_plan):
        node = PlanNode.from_dict(seq_scan_plan)
        order = [(n.node_type, n.relation_name) for n in node.walk()]
        assert order == [
            ("Hash Join", None),
            ("Seq Scan", "orders"),
            ("Hash", None),
            ("Seq Scan", "customers"),
        ]

    def test_nodes_are_immutable(self):
        node = PlanNode(node_type="Result")
        with pytest.raises(AttributeError):
            node.node_type = "Sort"


class TestParseExplainOutput:
    """Tests for unwrapping EXPLAIN results."""

    def test_parses_decoded_json(self, explain_rows, seq_scan_plan):
        explain = parse_explain_output(explain_rows(seq_scan_plan, **{"Planning Time": 0.3}))
        assert explain.plan.node_type == "Hash Join"
        assert explain.planning_time_ms == 0.3
        assert explain.execution_time_ms is None
        assert "Plan" in explain.raw

    def test_parses_json_string(self):
        payload = json.dumps([{"Plan": {"Node Type": "Seq Scan"}, "Execution Time": 1.5}])
        explain = parse_explain_output([{"QUERY PLAN": payload}])
        assert explain.plan.node_type == "Seq Scan"
        assert explain.execution_time_ms == 1.5

    def test_no_rows_raises(self):
        with pytest.raises(ValueError):
            parse_explain_output([])

    def test_empty_plan_list_raises(self):
        with pytest.raises(ValueError):
            unwrap_explain_result([])


class TestExtractWarnings:
    """Tests for extract_warnings."""

    def test_large_seq_scan_warns_once(self):
        plan = {
            "Node Type": "Seq Scan",
            "Relation Name": "orders",
            "Filter": "(status = 'active')",
            "Plan Rows": 15000,
            "Total Cost": 300.0,
        }
        warnings = extract_warnings(plan)

        assert len(warnings) == 1
        assert '"orders"' in warnings[0]
        assert "~15000" in warnings[0]
        assert warnings[0] == (
            'Sequential scan on "orders" with ~15000 estimated rows. Consider adding an index.'
        )

    @pytest.mark.parametrize("rows,expected", [(10000, 0), (10001, 1)])
    def test_seq_scan_threshold_is_strict(self, rows, expected):
        plan = {"Node Type": "Seq Scan", "Relation Name": "t", "Plan Rows": rows}
        assert len(extract_warnings(plan)) == expected

    @pytest.mark.parametrize("rows,expected", [(50000, 0), (50001, 1)])
    def test_nested_loop_threshold(self, rows, expected):
        warnings = extract_warnings({"Node Type": "Nested Loop", "Plan Rows": rows})
        assert len(warnings) == expected
        if expected:
            assert warnings[0].startswith(f"Nested Loop join producing ~{rows} rows.")

    @pytest.mark.parametrize("node_type", ["Sort", "Hash"])
    def test_costly_sort_and_hash(self, node_type):
        warnings = extract_warnings({"Node Type": node_type, "Total Cost": 12000.0})
        assert warnings == [
            f"High-cost {node_type} operation (cost: 12000). "
            "May benefit from more work_mem or query restructuring."
        ]

    def test_cost_at_threshold_does_not_warn(self):
        assert extract_warnings({"Node Type": "Sort", "Total Cost": 10000}) == []

    def test_envelope_is_unwrapped(self):
        warnings = extract_warnings({
            "Plan": {"Node Type": "Seq Scan", "Relation Name": "big", "Plan Rows": 20000},
            "Planning Time": 0.1,
        })
        assert len(warnings) == 1

    def test_children_visited_in_pre_order(self):
        plan = {
            "Node Type": "Nested Loop",
            "Plan Rows": 60000,
            "Plans": [
                {"Node Type": "Seq Scan", "Relation Name": "a", "Plan Rows": 20000},
                {
                    "Node Type": "Sort",
                    "Total Cost": 15000.5,
                    "Plans": [{"Node Type": "Seq Scan", "Relation Name": "b", "Plan Rows": 30000}],
                },
            ],
        }
        warnings = extract_warnings(plan)

        assert len(warnings) == 4
        assert warnings[0].startswith("Nested Loop")
        assert '"a"' in warnings[1]
        assert "High-cost Sort operation (cost: 15000.5)" in warnings[2]
        assert '"b"' in warnings[3]

    def test_quiet_plan_has_no_warnings(self, seq_scan_plan):
        small = dict(seq_scan_plan, Plans=[seq_scan_plan["Plans"][1]])
        assert extract_warnings(small) == []


def test_format_number():
    assert format_number(12000.0) == "12000"
    assert format_number(12000.25) == "12000.25"
