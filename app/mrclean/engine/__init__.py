"""Scanning, pruning and parallel deletion."""

from mrclean.engine.cleaner import ParallelCleaner, Statistics, remove_symlink
from mrclean.engine.pipeline import CleanPipeline, PipelineStateError, RunState, clean, prune, scan
from mrclean.engine.scanner import Scanner, ScanPartial, ScanResult

__all__ = [
    "CleanPipeline",
    "ParallelCleaner",
    "PipelineStateError",
    "RunState",
    "ScanPartial",
    "ScanResult",
    "Scanner",
    "Statistics",
    "clean",
    "prune",
    "remove_symlink",
    "scan",
]
