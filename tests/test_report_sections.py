"""
Tests for appraisal report section generation

Verifies:
- Section ids and order with and without comparables / valuations
- Property identification carries the display address
- Comparables table lists selected comparables only
- User-supplied text is HTML-escaped
"""

from dataclasses import replace

import pytest

from core.valuation import CostApproachMethod, SalesComparisonMethod, reconcile_valuations
from reporting import ReportGenerator


FULL_ORDER = [
    "summary",
    "property-id",
    "physical-desc",
    "market-analysis",
    "comparables-table",
    "methodology",
    "valuation-results",
    "conclusions",
    "assumptions",
]


@pytest.fixture
def generator():
    return ReportGenerator()


@pytest.fixture
def comparables(create_comp):
    return [create_comp(sale_price=2_000_000 + i * 50_000) for i in range(4)]


@pytest.fixture
def valuations(tables, reference_date, subject, comparables):
    sales = SalesComparisonMethod(tables, reference_date).valuate(subject, comparables)
    cost = CostApproachMethod(tables, reference_date).valuate(subject, 1_500_000, 10_000)
    return [sales, cost]


class TestSectionOrder:

    def test_full_report(self, generator, subject, valuations, comparables):
        sections = generator.generate_standard_sections(subject, valuations, comparables)

        assert [s.id for s in sections] == FULL_ORDER
        assert [s.order for s in sections] == list(range(len(FULL_ORDER)))
        assert all(s.enabled for s in sections)

    def test_no_comparables(self, generator, subject, valuations):
        ids = [s.id for s in generator.generate_standard_sections(subject, valuations, [])]

        assert "market-analysis" not in ids
        assert "comparables-table" not in ids
        assert "methodology" in ids

    def test_no_valuations(self, generator, subject, comparables):
        ids = [s.id for s in generator.generate_standard_sections(subject, [], comparables)]

        assert ids == [
            "summary",
            "property-id",
            "physical-desc",
            "market-analysis",
            "comparables-table",
            "conclusions",
        ]

    def test_bare_subject(self, generator, subject):
        sections = generator.generate_standard_sections(subject, [], [])

        assert [s.id for s in sections] == ["summary", "property-id", "physical-desc", "conclusions"]
        assert [s.order for s in sections] == [0, 1, 2, 3]


class TestSectionContent:

    def test_property_identification_has_address(self, generator, subject):
        sections = {s.id: s for s in generator.generate_standard_sections(subject, [], [])}

        assert "Levinsky 22" in sections["property-id"].content
        assert "Levinsky 22, Tel Aviv" in sections["property-id"].content

    def test_summary_averages_valuations(self, generator, subject, valuations):
        sections = {s.id: s for s in generator.generate_standard_sections(subject, valuations, [])}

        average = sum(v.estimated_value for v in valuations) / len(valuations)
        assert f"₪{int(round(average)):,}" in sections["summary"].content

    def test_reconciled_result_leads_summary_and_conclusions(self, generator, subject, valuations):
        hybrid = reconcile_valuations(valuations)
        sections = {
            s.id: s for s in generator.generate_standard_sections(subject, valuations + [hybrid], [])
        }

        headline = f"₪{int(hybrid.estimated_value):,}"
        assert headline in sections["summary"].content
        assert f"₪{int(hybrid.value_range.min):,} - ₪{int(hybrid.value_range.max):,}" in sections["summary"].content
        assert f"{hybrid.confidence}%" in sections["summary"].content
        assert headline in sections["conclusions"].content

    def test_comparables_table_shows_adjustments(self, generator, subject, valuations):
        adjusted = valuations[0].details.comparables
        sections = {s.id: s for s in generator.generate_standard_sections(subject, [], adjusted)}

        assert "12.5%" in sections["comparables-table"].content

    def test_comparables_table_selected_only(self, generator, subject, create_comp):
        comps = [
            create_comp(address="Chosen Street 1"),
            create_comp(address="Ignored Street 2", selected=False),
        ]
        sections = {s.id: s for s in generator.generate_standard_sections(subject, [], comps)}
        table = sections["comparables-table"].content

        assert "Chosen Street 1" in table
        assert "Ignored Street 2" not in table

    def test_user_text_escaped(self, generator, subject):
        hostile = replace(subject, address=replace(subject.address, street="<script>alert(1)</script>"))
        sections = generator.generate_standard_sections(hostile, [], [])

        for section in sections:
            assert "<script>" not in section.content
        assert "&lt;script&gt;" in sections[1].content

    def test_assumptions_listed_once(self, generator, subject, valuations):
        sections = {s.id: s for s in generator.generate_standard_sections(subject, valuations, [])}
        content = sections["assumptions"].content

        for assumption in valuations[0].assumptions:
            assert content.count(assumption) == 1

    def test_currency(self, subject, valuations):
        sections = ReportGenerator(currency="USD").generate_standard_sections(subject, valuations, [])
        assert "$" in sections[0].content

    def test_to_dict(self, generator, subject):
        data = generator.generate_standard_sections(subject, [], [])[0].to_dict()
        assert set(data) == {"id", "title", "content", "order", "enabled"}
