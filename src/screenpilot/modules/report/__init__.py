from .console import (
    ScenarioResult,
    ConsoleReporter,
    format_step,
    format_scenario_end,
    format_summary,
)
from .junit import xml_escape, generate_xml, write_xml

__all__ = [
    "ScenarioResult",
    "ConsoleReporter",
    "format_step",
    "format_scenario_end",
    "format_summary",
    "xml_escape",
    "generate_xml",
    "write_xml",
]
