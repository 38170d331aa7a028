"""
Unit Tests - Profitability Calculator
"""
from decimal import Decimal

import pytest

from salesync.analytics import (
    ProfitabilityCalculator,
    calculate_profitability,
    cost_map,
    import_costs,
    summarize,
)
from salesync.exceptions import SinkWriteError
from salesync.models.records import LineItemRecord
from salesync.storage import InMemoryTableSink
from salesync.storage.schema import MODEL_COSTS, MODEL_PROFITABILITY, SALES_FACT


def _line(**overrides) -> LineItemRecord:
    values = dict(
        date="2024-02-01",
        channel="Shopify",
        order_id="1",
        line_id="1",
        sku="SKU-A",
        qty=2,
        item_gross=Decimal("100.00"),
        item_discount=Decimal("10.00"),
        total_fees=Decimal("5.00"),
        transaction_fee=Decimal("5.00"),
    )
    values.update(overrides)
    return LineItemRecord(**values)


class FailingCostSink(InMemoryTableSink):
    async def read_rows(self, table):
        if table == MODEL_COSTS.name:
            raise RuntimeError("sheet not found")
        return await super().read_rows(table)


class FailingProfitAppendSink(InMemoryTableSink):
    async def append_rows(self, table, rows):
        if table == MODEL_PROFITABILITY.name:
            raise RuntimeError("quota exceeded")
        await super().append_rows(table, rows)


class TestCalculateProfitability:
    """Tests for single-line profitability"""

    def test_worked_example(self):
        """90 revenue at cost 20 x2 and 5 fees nets 45"""
        result = calculate_profitability(_line(), Decimal("20"))

        assert result.revenue == Decimal("90.00")
        assert result.total_cost == Decimal("40.00")
        assert result.gross_profit == Decimal("50.00")
        assert result.net_profit == Decimal("45.00")
        assert result.gross_margin_pct == Decimal("55.56")
        assert result.net_margin_pct == Decimal("50.00")
        assert result.unit_revenue == Decimal("45.00")
        assert result.unit_profit == Decimal("22.50")

    def test_refund_reduces_net_profit(self):
        """Refunds come off net profit only"""
        result = calculate_profitability(_line(refund=Decimal("15.00")), Decimal("20"))

        assert result.gross_profit == Decimal("50.00")
        assert result.net_profit == Decimal("30.00")

    def test_zero_revenue_has_zero_margins(self):
        """Margins are 0 rather than a division error"""
        result = calculate_profitability(_line(item_gross=Decimal("10"), item_discount=Decimal("10")), Decimal("1"))

        assert result.revenue == Decimal("0.00")
        assert result.gross_margin_pct == Decimal("0")
        assert result.net_margin_pct == Decimal("0")

    def test_zero_qty_has_zero_unit_values(self):
        """Per-unit figures are 0 without units"""
        result = calculate_profitability(_line(qty=0), Decimal("20"))

        assert result.unit_revenue == Decimal("0")
        assert result.unit_profit == Decimal("0")

    def test_missing_cost_is_zero(self):
        """Without a cost the whole revenue is gross profit"""
        result = calculate_profitability(_line())

        assert result.unit_cost == Decimal("0.00")
        assert result.gross_profit == Decimal("90.00")


class TestCostMap:
    """Tests for cost lookup construction"""

    def test_last_row_wins(self):
        """A SKU listed twice keeps its last cost"""
        costs = cost_map(
            [
                {"sku": "A", "unit_cost": "5.00"},
                {"sku": "", "unit_cost": "1.00"},
                {"sku": "A", "unit_cost": "6.50", "notes": "new supplier"},
            ]
        )

        assert list(costs) == ["A"]
        assert costs["A"].unit_cost == Decimal("6.50")
        assert costs["A"].notes == "new supplier"


class TestSummarize:
    """Tests for the run summary"""

    def test_per_channel_totals(self):
        """Totals are grouped by channel in first-seen order"""
        records = [
            calculate_profitability(_line(channel="Shopify"), Decimal("20")),
            calculate_profitability(_line(channel="Amazon", line_id="2"), Decimal("0")),
            calculate_profitability(_line(channel="Shopify", line_id="3"), Decimal("20")),
        ]

        summary = summarize(records)

        assert summary.rows == 3
        assert list(summary.by_channel) == ["Shopify", "Amazon"]
        assert summary.by_channel["Shopify"]["profit"] == 90.0
        assert summary.by_channel["Amazon"]["profit"] == 85.0
        assert summary.total_revenue == 270.0
        assert summary.total_fees == 15.0

    def test_empty(self):
        """No records summarize to zeros"""
        summary = summarize([])

        assert summary.rows == 0
        assert summary.by_channel == {}


class TestProfitabilityCalculator:
    """Tests for the full profitability rebuild"""

    async def test_rewrites_table_deterministically(self, memory_sink):
        """Two runs over the same inputs leave identical tables"""
        await memory_sink.append_rows(
            SALES_FACT.name,
            [_line().to_row(), _line(line_id="2", sku="SKU-B", qty=1).to_row()],
        )
        await memory_sink.append_rows(MODEL_COSTS.name, [("SKU-A", Decimal("20.00"), "")])
        calculator = ProfitabilityCalculator(memory_sink)

        await calculator.run()
        first = await memory_sink.read_rows(MODEL_PROFITABILITY.name)
        summary = await calculator.run()
        second = await memory_sink.read_rows(MODEL_PROFITABILITY.name)

        assert first == second
        assert summary.rows == 2
        assert [row["net_profit"] for row in second] == ["45.00", "85.00"]
        assert second[1]["unit_cost"] == "0.00"

    async def test_empty_sales_clears_table(self, memory_sink):
        """Stale rows disappear when there are no sales"""
        stale = calculate_profitability(_line(), Decimal("1"))
        await memory_sink.append_rows(MODEL_PROFITABILITY.name, [stale.to_row()])

        summary = await ProfitabilityCalculator(memory_sink).run()

        assert summary.rows == 0
        assert memory_sink.row_count(MODEL_PROFITABILITY.name) == 0

    async def test_unreadable_cost_table_means_zero_costs(self):
        """A cost table read failure is not fatal"""
        sink = FailingCostSink()
        await sink.append_rows(SALES_FACT.name, [_line().to_row()])

        summary = await ProfitabilityCalculator(sink).run()

        assert summary.rows == 1
        rows = await sink.read_rows(MODEL_PROFITABILITY.name)
        assert rows[0]["gross_profit"] == "90.00"

    async def test_failed_append_leaves_table_empty(self):
        """A failed rewrite raises SinkWriteError after the old rows were cleared"""
        sink = FailingProfitAppendSink()
        await sink.append_rows(SALES_FACT.name, [_line().to_row()])
        await InMemoryTableSink.append_rows(
            sink, MODEL_PROFITABILITY.name, [calculate_profitability(_line(), Decimal("1")).to_row()]
        )

        with pytest.raises(SinkWriteError) as exc_info:
            await ProfitabilityCalculator(sink).run()

        assert exc_info.value.table == MODEL_PROFITABILITY.name
        assert exc_info.value.rows == 1
        assert sink.row_count(MODEL_PROFITABILITY.name) == 0


class TestImportCosts:
    """Tests for unit cost import"""

    async def test_parses_and_replaces(self, memory_sink):
        """Currency formatting is stripped and bad rows are skipped"""
        await memory_sink.append_rows(MODEL_COSTS.name, [("OLD", Decimal("1.00"), "")])

        count = await import_costs(
            memory_sink,
            [
                {"sku": "A", "unit_cost": "$1,250.5", "notes": "bulk"},
                {"sku": "B", "unit_cost": "abc"},
                {"sku": "", "unit_cost": "3"},
                {"sku": "C", "unit_cost": "NaN"},
                {"sku": "D", "unit_cost": "4"},
            ],
        )

        assert count == 2
        rows = await memory_sink.read_rows(MODEL_COSTS.name)
        assert [(r["sku"], r["unit_cost"], r["notes"]) for r in rows] == [
            ("A", "1250.50", "bulk"),
            ("D", "4.00", ""),
        ]

    @pytest.mark.parametrize("replace,expected", [(True, 1), (False, 2)])
    async def test_append_mode(self, memory_sink, replace, expected):
        """replace=False keeps the existing costs"""
        await memory_sink.append_rows(MODEL_COSTS.name, [("OLD", Decimal("1.00"), "")])

        await import_costs(memory_sink, [{"sku": "A", "unit_cost": "2"}], replace=replace)

        assert memory_sink.row_count(MODEL_COSTS.name) == expected
