"""Session export."""

from .exporter import ExportFormat, ExportResult, SessionExporter, to_markdown

__all__ = ["ExportFormat", "ExportResult", "SessionExporter", "to_markdown"]
