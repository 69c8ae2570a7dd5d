"""Support bundle collaborators: diagnostic archive, system facts, temp values."""

from plumb.diagnostics.blob import TempValue
from plumb.diagnostics.exporter import DiagnosticExporter
from plumb.diagnostics.system_info import cpu_information, system_information

__all__ = [
    "DiagnosticExporter",
    "TempValue",
    "cpu_information",
    "system_information",
]
