"""
Reporting module for the Appraisal Valuation Engine.

Builds appraisal report sections from valuation results and exposes
the command-line interface.

Usage:
    from reporting import ReportGenerator

    generator = ReportGenerator()
    sections = generator.generate_standard_sections(subject, [result], comparables)
"""

from .sections import ReportGenerator, ReportSection

__all__ = [
    "ReportGenerator",
    "ReportSection",
]
