"""Output generation for schedules."""

from periodplanner.output.pdf_generator import PDFGenerator
from periodplanner.output.text_report import TextReportGenerator

__all__ = [
    "PDFGenerator",
    "TextReportGenerator",
]
