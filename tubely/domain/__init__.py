"""Media pipeline stages reused by the API and the CLI."""

from tubely.ingest.aspect import AspectCategory, classify
from tubely.ingest.faststart import FFmpegFastStart, Remuxer, processed_path_for
from tubely.ingest.probe import FFprobe, Prober, ProbeResult

__all__ = [
    "AspectCategory",
    "classify",
    "FFmpegFastStart",
    "Remuxer",
    "processed_path_for",
    "FFprobe",
    "Prober",
    "ProbeResult",
]
