"""Tests for Section 8 table extraction and row parsing."""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from asset_table import AssetRow, extract_asset_breakdown, extract_assets, parse_assets
from report_sections import validate_report
from tests.test_report_sections import FULL_REPORT, HEADINGS, TABLE


class TestExtractAssetBreakdown:

    def test_body_runs_to_end_of_text(self):
        body = extract_asset_breakdown(validate_report(FULL_REPORT))
        assert "PAYTM" in body
        assert HEADINGS[8] not in body

    def test_body_stops_at_next_heading(self):
        text = "\n".join([HEADINGS[8], TABLE, "9. *Appendix*", "ZZZ | Stock | 1 | 2"])
        body = extract_asset_breakdown(text)
        assert "PAYTM" in body
        assert "ZZZ" not in body

    def test_no_section_eight(self):
        assert extract_asset_breakdown("1. *Summary Portfolio*\ntext") == ""
        assert extract_assets("") == []


class TestParseAssets:

    def test_three_rows_from_table(self):
        rows = parse_assets(TABLE)
        assert rows == [
            AssetRow("PAYTM", "Stock", "₹49684.80", "₹11251.35"),
            AssetRow("SUVIDHAA", "Stock", "₹54068.72", "₹19703.76"),
            AssetRow("GOLDBEES-EQ", "ETF", "N/A", "₹15316.20"),
        ]

    def test_header_and_dividers_skipped(self):
        text = "\n".join([
            "| Asset Name | Type | Invested Amount | Current Value |",
            "|---|---|---|---|",
            "| :--- | :---: | ---: | --- |",
            "| INFY | Stock | ₹1000.00 | ₹1200.00 |",
        ])
        rows = parse_assets(text)
        assert [r.name for r in rows] == ["INFY"]

    def test_wrong_cell_count_dropped(self):
        text = "\n".join([
            "A | Stock | ₹1",
            "B | Stock | ₹1 | ₹2 | extra",
            "C | Stock |  | ₹2",
            "D | Stock | ₹1 | ₹2",
            "no separator here",
        ])
        rows = parse_assets(text)
        assert [r.name for r in rows] == ["D"]

    def test_every_row_has_four_non_empty_fields(self):
        text = TABLE + "\n| X | | | |\n|| Y | Z ||"
        for row in parse_assets(text):
            values = list(row.to_dict().values())
            assert len(values) == 4
            assert all(v.strip() for v in values)
            assert "asset name" not in row.name.lower()
            assert not set(row.name) <= set("-:")
