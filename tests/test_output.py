"""Tests for text and PDF output."""

import pytest

from periodplanner.analytics.metrics import ScheduleAnalytics
from periodplanner.domain.models import ConstraintConfig, empty_week
from periodplanner.output.pdf_generator import PDFGenerator
from periodplanner.output.text_report import TextReportGenerator
from periodplanner.scheduling.simulator import WhatIfSimulator

MON, TUE = "2024-01-15", "2024-01-16"


@pytest.fixture
def week():
    week = empty_week([MON, TUE])
    week[MON][1] = "PK207"
    week[MON][2] = "K-313"
    week[TUE][4] = "PK214"
    return week


class TestTextReport:
    """Tests for TextReportGenerator."""

    def test_week_grid(self, week):
        text = TextReportGenerator().week_grid(week, {TUE: {1: True}}, title="Week of Jan 15")
        lines = text.splitlines()

        assert "Week of Jan 15" in lines
        assert "Mon 01/15" in text
        assert lines[5].startswith("1")
        assert "PK207" in lines[5]
        assert "x" in lines[5].split()
        assert text.rstrip().endswith("Classes this week: 3")

    def test_simulation_report(self, week):
        for p in (5, 7):
            week[MON][p] = "PK207"
        result = WhatIfSimulator().simulate(
            {0: week}, ConstraintConfig(), ConstraintConfig(max_classes_per_day=3)
        )

        text = TextReportGenerator().simulation(result)

        assert "Source: scan" in text
        assert "Classes: 5 -> 3" in text
        assert "week +0 2024-01-15 period 7: PK207 (Would exceed maximum classes per day)" in text

    def test_simulation_report_truncates(self, week):
        for p in (3, 5, 6, 7, 8):
            week[MON][p] = "PK207"
        result = WhatIfSimulator().simulate(
            {0: week}, ConstraintConfig(), ConstraintConfig(max_classes_per_day=1)
        )
        text = TextReportGenerator().simulation(result, limit=2)
        assert "... and" in text

    def test_analytics_report(self, week):
        analytics = ScheduleAnalytics()
        metrics = analytics.calculate_metrics({0: week}, ConstraintConfig())
        text = TextReportGenerator().analytics(
            metrics, analytics.generate_insights(metrics), analytics.generate_suggestions(metrics)
        )
        assert f"Quality score: {metrics.overall_quality}/100" in text
        assert "Insights:" in text
        assert "Suggestions:" in text

    def test_write(self, week, tmp_path):
        path = tmp_path / "week.txt"
        content = TextReportGenerator().week_grid(week)
        TextReportGenerator().write(content, path)
        assert path.read_text() == content


class TestPDFGenerator:
    """Tests for PDFGenerator."""

    def test_buffer_is_pdf(self, week):
        buffer = PDFGenerator().generate_to_buffer(week, {TUE: {1: True}}, title="Week of Jan 15")
        assert buffer.read(4) == b"%PDF"

    def test_writes_file(self, week, tmp_path):
        path = tmp_path / "week.pdf"
        PDFGenerator().generate(week, path)
        assert path.read_bytes().startswith(b"%PDF")
