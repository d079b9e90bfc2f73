"""Crawl frontier: URL policy, eligibility rules, queue, ingest and export."""

from .eligibility import EligibilityEngine, LiveGraphView, SnapshotGraphView
from .export import GraphExporter
from .ingest import IngestPipeline, IngestResult, InvalidReport
from .queue import FrontierQueue
from .urls import hostname, validate_host, validate_url

__all__ = [
    "EligibilityEngine",
    "FrontierQueue",
    "GraphExporter",
    "IngestPipeline",
    "IngestResult",
    "InvalidReport",
    "LiveGraphView",
    "SnapshotGraphView",
    "hostname",
    "validate_host",
    "validate_url",
]
