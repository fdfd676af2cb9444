"""Tests for PDF rendering of validated report text."""

import sys
import os
import io
import re

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from reportlab.platypus import Paragraph, Spacer

from report_pdf import (
    DEFAULT_HEADING_COLOR,
    SECTION_COLORS,
    ReportRenderError,
    build_report_story,
    get_report_styles,
    render_report_bytes,
    render_report_pdf,
    sanitize_pdf_text,
    section_color,
)
from report_sections import validate_report
from tests.test_report_sections import FULL_REPORT


def _paragraphs(story):
    return [f for f in story if isinstance(f, Paragraph)]


class TestStory:

    def test_headings_get_section_colors(self):
        story = build_report_story(validate_report(FULL_REPORT), get_report_styles())
        headings = [p for p in _paragraphs(story) if p.style.name.startswith("SectionHeading")]
        assert len(headings) == 8
        for idx, p in enumerate(headings, start=1):
            assert p.style.fontName == "Helvetica-Bold"
            assert p.style.fontSize == 16
            assert p.style.textColor.hexval().lower() == "0x" + SECTION_COLORS[idx].lstrip("#")

    def test_body_lines_are_paragraphs(self):
        text = "1. *Summary & Portfolio*\nfirst line\n\nsecond line"
        story = build_report_story(text, get_report_styles())
        body = [p for p in _paragraphs(story) if p.style.name == "BodyText"]
        assert [p.getPlainText() for p in body] == ["first line", "second line"]
        assert any(isinstance(f, Spacer) for f in story)

    def test_heading_text(self):
        story = build_report_story("3. *Goal Alignment Percentage*", get_report_styles())
        heading = _paragraphs(story)[0]
        assert heading.getPlainText() == "3. Goal Alignment Percentage"

    def test_markup_characters_escaped(self):
        story = build_report_story("Cash < 5% & debt > 10%", get_report_styles())
        assert _paragraphs(story)[0].getPlainText() == "Cash < 5% & debt > 10%"

    def test_unexpected_index_uses_default_color(self):
        assert section_color(9) == DEFAULT_HEADING_COLOR
        assert section_color("x") == DEFAULT_HEADING_COLOR
        assert section_color("2") == SECTION_COLORS[2]


class TestSanitize:

    def test_rupee_and_quotes(self):
        assert sanitize_pdf_text("₹1,234 “gain” – ok") == 'Rs.1,234 "gain" - ok'

    def test_none(self):
        assert sanitize_pdf_text(None) == ""


class TestRender:

    def test_render_to_stream(self):
        buf = io.BytesIO()
        render_report_pdf(validate_report(FULL_REPORT), buf)
        assert buf.getvalue().startswith(b"%PDF")

    def test_render_to_path(self, tmp_path):
        out = tmp_path / "report.pdf"
        render_report_pdf(validate_report(FULL_REPORT), str(out))
        assert out.read_bytes().startswith(b"%PDF")

    def test_render_bytes_long_report_paginates(self):
        long_text = "1. *Summary & Portfolio*\n" + "\n".join(f"line {i}" for i in range(400))
        data = render_report_bytes(long_text)
        assert data.startswith(b"%PDF")
        assert len(re.findall(rb"/Type /Page[^s]", data)) > 1

    def test_empty_text_still_renders(self):
        assert render_report_bytes("").startswith(b"%PDF")

    def test_write_failure_is_raised(self, tmp_path):
        missing_dir = tmp_path / "does-not-exist" / "report.pdf"
        with pytest.raises(ReportRenderError):
            render_report_pdf("1. *Summary Portfolio*\nbody", str(missing_dir))

    def test_closed_stream_is_raised(self):
        buf = io.BytesIO()
        buf.close()
        with pytest.raises(ReportRenderError):
            render_report_pdf("1. *Summary Portfolio*\nbody", buf)
