"""Base exception for mrclean.

Only construction-time failures (bad patterns, bad configuration,
failed safety checks, pipeline misuse) are raised as exceptions.
Per-path scan and deletion failures are returned as report entries.
"""


class MrCleanError(Exception):
    """Base exception for errors that abort a run before it starts."""
