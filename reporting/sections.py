"""
Appraisal Report Sections

Builds the textual sections of an appraisal report from a subject
property, its valuation results and the comparables used. Output is
escaped HTML fragments; page layout belongs to the caller.

Section Order:
1. Executive Summary
2. Property Identification
3. Physical Description
4. Market Analysis (comparables only)
5. Comparable Transactions (comparables only)
6. Valuation Methodology (valuations only)
7. Valuation Results (valuations only)
8. Conclusions
9. Assumptions & Limitations (valuations only)
"""

from __future__ import annotations

from dataclasses import dataclass
from html import escape
from statistics import fmean
from typing import List, Sequence

from core.valuation.models import (
    ComparableTransaction,
    SubjectProperty,
    ValuationMethod,
    ValuationResult,
    round_half_up,
)
from utils.formatting import format_currency, format_percent


@dataclass(frozen=True)
class ReportSection:
    """One titled block of report content."""

    id: str
    title: str
    content: str
    order: int
    enabled: bool = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "order": self.order,
            "enabled": self.enabled,
        }


def _text(value) -> str:
    return escape(str(value), quote=False)


def _headline(valuations: Sequence[ValuationResult]):
    """
    Value, range and confidence the report leads with.

    A reconciled (hybrid) result speaks for the whole report; otherwise the
    plain average of the method results is given with no single range.
    """
    for valuation in valuations:
        if valuation.method == ValuationMethod.HYBRID:
            return valuation.estimated_value, valuation.value_range, valuation.confidence
    if not valuations:
        return 0, None, 0
    value = round_half_up(fmean(v.estimated_value for v in valuations))
    confidence = round_half_up(fmean(v.confidence for v in valuations))
    return value, None, confidence


class ReportGenerator:
    """
    Generates the standard appraisal report sections.

    Usage:
        generator = ReportGenerator()
        sections = generator.generate_standard_sections(subject, [result], comps)
    """

    def __init__(self, currency: str = "ILS"):
        self._currency = currency

    def generate_standard_sections(
        self,
        subject: SubjectProperty,
        valuations: Sequence[ValuationResult],
        comparables: Sequence[ComparableTransaction],
    ) -> List[ReportSection]:
        """
        Build every applicable section, numbered in report order.

        Args:
            subject: Property being reported on
            valuations: Results to present (may be empty)
            comparables: Comparables considered (may be empty)

        Returns:
            Sections in display order
        """
        builders = [
            ("summary", "Executive Summary", lambda: self._build_summary(subject, valuations)),
            ("property-id", "Property Identification", lambda: self._build_identification(subject)),
            ("physical-desc", "Physical Description", lambda: self._build_physical(subject)),
        ]
        if comparables:
            builders += [
                ("market-analysis", "Market Analysis", lambda: self._build_market(comparables)),
                ("comparables-table", "Comparable Transactions", lambda: self._build_comparables(comparables)),
            ]
        if valuations:
            builders += [
                ("methodology", "Valuation Methodology", lambda: self._build_methodology(valuations)),
                ("valuation-results", "Valuation Results", lambda: self._build_results(valuations)),
            ]
        builders.append(
            ("conclusions", "Conclusions", lambda: self._build_conclusions(subject, valuations))
        )
        if valuations:
            builders.append(
                ("assumptions", "Assumptions & Limitations", lambda: self._build_assumptions(valuations))
            )

        return [
            ReportSection(id=section_id, title=title, content=build(), order=order)
            for order, (section_id, title, build) in enumerate(builders)
        ]

    # =========================================================================
    # Section Builders
    # =========================================================================

    def _money(self, amount: float) -> str:
        return _text(format_currency(amount, self._currency))

    def _build_summary(self, subject: SubjectProperty, valuations: Sequence[ValuationResult]) -> str:
        value, value_range, confidence = _headline(valuations)
        range_text = (
            f"{self._money(value_range.min)} - {self._money(value_range.max)}"
            if value_range is not None
            else "per the individual valuation methods."
        )
        return "\n".join([
            f"<p>Professional appraisal report for the property at {_text(subject.address.display)}.</p>",
            f"<p><strong>Estimated value:</strong> {self._money(value)}</p>",
            f"<p><strong>Value range:</strong> {range_text}</p>",
            f"<p><strong>Confidence:</strong> {confidence}%</p>",
            "<p>The appraisal follows professional standards and the most recent data available.</p>",
        ])

    def _build_identification(self, subject: SubjectProperty) -> str:
        rows = [
            ("Address", subject.address.display),
            ("Neighbourhood", subject.address.neighborhood or "-"),
            ("Postal code", subject.address.postal_code or "-"),
            ("Property type", subject.property_type.value),
        ]
        cells = "\n".join(
            f"  <tr><td><strong>{label}:</strong></td><td>{_text(value)}</td></tr>"
            for label, value in rows
        )
        return f"<table>\n{cells}\n</table>"

    def _build_physical(self, subject: SubjectProperty) -> str:
        d = subject.details
        amenities = [
            "elevator" if d.elevator else None,
            f"{d.parking} parking spaces" if d.parking > 0 else None,
            "storage" if d.storage else None,
            "balcony" if d.balcony else None,
            "accessible" if d.accessible else None,
        ]
        total_floors = d.total_floors if d.total_floors is not None else "?"
        lines = [
            f"<p><strong>Built area:</strong> {d.built_area:g} sqm</p>",
            f"<p><strong>Rooms:</strong> {d.rooms:g} ({d.bedrooms} bedrooms, {d.bathrooms} bathrooms)</p>",
            f"<p><strong>Floor:</strong> {d.floor} of {total_floors}</p>",
            f"<p><strong>Build year:</strong> {d.build_year}</p>",
            f"<p><strong>Condition:</strong> {d.condition.value}</p>",
            f"<p><strong>Amenities:</strong> {', '.join(a for a in amenities if a) or 'none'}</p>",
        ]
        if subject.features:
            lines.append(f"<p><strong>Features:</strong> {_text(', '.join(subject.features))}</p>")
        return "\n".join(lines)

    def _build_market(self, comparables: Sequence[ComparableTransaction]) -> str:
        selected = [c for c in comparables if c.selected]
        avg_price = fmean(c.sale_price for c in selected) if selected else 0
        avg_ppsqm = fmean(c.price_per_sqm for c in selected) if selected else 0
        return "\n".join([
            f"<p>Market analysis based on {len(selected)} comparable transactions near the property.</p>",
            f"<p><strong>Average price:</strong> {self._money(round_half_up(avg_price))}</p>",
            f"<p><strong>Average price per sqm:</strong> {self._money(round_half_up(avg_ppsqm))}</p>",
            "<p>Transactions were selected for similarity in key attributes and geographic proximity.</p>",
        ])

    def _build_comparables(self, comparables: Sequence[ComparableTransaction]) -> str:
        rows = "\n".join(
            "    <tr>"
            f"<td>{_text(c.address)}</td>"
            f"<td>{self._money(c.sale_price)}</td>"
            f"<td>{c.built_area:g} sqm</td>"
            f"<td>{self._money(round_half_up(c.price_per_sqm))}</td>"
            f"<td>{format_percent(c.adjustments.total * 100)}</td>"
            "</tr>"
            for c in comparables
            if c.selected
        )
        return (
            "<table>\n"
            "  <thead>\n"
            "    <tr><th>Address</th><th>Price</th><th>Area</th>"
            "<th>Price per sqm</th><th>Total adjustment</th></tr>\n"
            "  </thead>\n"
            f"  <tbody>\n{rows}\n  </tbody>\n"
            "</table>"
        )

    def _build_methodology(self, valuations: Sequence[ValuationResult]) -> str:
        return "\n".join(f"<p>{_text(v.methodology)}</p>" for v in valuations)

    def _build_results(self, valuations: Sequence[ValuationResult]) -> str:
        return "\n".join(
            f"<p><strong>{v.method.value.upper()}:</strong> {self._money(v.estimated_value)} "
            f"(range: {self._money(v.value_range.min)} - {self._money(v.value_range.max)}, "
            f"confidence: {v.confidence}%)</p>"
            for v in valuations
        )

    def _build_conclusions(self, subject: SubjectProperty, valuations: Sequence[ValuationResult]) -> str:
        value, _, _ = _headline(valuations)
        return "\n".join([
            f"<p>Based on the market analysis and calculations performed, the value of the property at "
            f"{_text(subject.address.street)} is estimated at <strong>{self._money(value)}</strong>.</p>",
            "<p>This value reflects the property's condition, location and market conditions "
            "at the valuation date.</p>",
        ])

    def _build_assumptions(self, valuations: Sequence[ValuationResult]) -> str:
        assumptions = list(dict.fromkeys(a for v in valuations for a in v.assumptions))
        limitations = list(dict.fromkeys(item for v in valuations for item in v.limitations))
        assumption_items = "\n".join(f"  <li>{_text(a)}</li>" for a in assumptions)
        limitation_items = "\n".join(f"  <li>{_text(item)}</li>" for item in limitations)
        return (
            f"<h4>Assumptions:</h4>\n<ul>\n{assumption_items}\n</ul>\n"
            f"<h4>Limitations:</h4>\n<ul>\n{limitation_items}\n</ul>"
        )
