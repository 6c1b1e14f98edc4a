# src/output/sink_factory.py — v1
"""Factory: instantiate the tabular sink from configuration."""

from __future__ import annotations

from treescan.config.settings import Settings
from treescan.output.base_sink import BaseTabularSink


def create_sink(settings: Settings) -> BaseTabularSink:
    """Create the configured output sink (OUTPUT_SINK env var).

    Raises:
        ValueError: If the sink type is not supported.
    """
    if settings.output_sink == "xlsx":
        from treescan.output.xlsx_sink import XlsxSink
        return XlsxSink(settings.output_path)

    if settings.output_sink == "memory":
        from treescan.output.memory_sink import MemorySink
        return MemorySink()

    raise ValueError(f"Unsupported output sink: {settings.output_sink!r}")
