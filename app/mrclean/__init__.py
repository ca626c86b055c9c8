"""mrclean - fast parallel cleaner for build artifacts and dependency caches."""

from mrclean.core.config import Config
from mrclean.engine.pipeline import clean, prune, scan
from mrclean.models import CleanItem, CleanReport

__version__ = "0.1.0"

__all__ = ["CleanItem", "CleanReport", "Config", "__version__", "clean", "prune", "scan"]
