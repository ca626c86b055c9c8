"""Cleaning pattern definitions and matching."""

from mrclean.patterns.builtin import PatternSet, builtin_patterns
from mrclean.patterns.matcher import PatternError, PatternMatcher, PatternRule, compile_glob

__all__ = [
    "PatternError",
    "PatternMatcher",
    "PatternRule",
    "PatternSet",
    "builtin_patterns",
    "compile_glob",
]
