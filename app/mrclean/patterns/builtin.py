"""Built-in cleaning patterns.

The default pattern table is an explicit value: callers build it once
with :func:`builtin_patterns` at startup and hand it to the pattern
matcher. Nothing here is cached at module level.
"""

from dataclasses import dataclass

from mrclean.models.item import PatternCategory

# Directory name globs, grouped by category.
_DIRECTORY_PATTERNS: tuple[tuple[str, PatternCategory], ...] = (
    # Dependencies
    ("node_modules", PatternCategory.DEPENDENCIES),
    ("bower_components", PatternCategory.DEPENDENCIES),
    ("vendor", PatternCategory.DEPENDENCIES),
    (".venv", PatternCategory.DEPENDENCIES),
    ("venv", PatternCategory.DEPENDENCIES),
    (".tox", PatternCategory.DEPENDENCIES),
    (".nox", PatternCategory.DEPENDENCIES),
    # Build outputs
    ("dist", PatternCategory.BUILD_OUTPUTS),
    ("build", PatternCategory.BUILD_OUTPUTS),
    ("target", PatternCategory.BUILD_OUTPUTS),
    ("out", PatternCategory.BUILD_OUTPUTS),
    (".next", PatternCategory.BUILD_OUTPUTS),
    (".nuxt", PatternCategory.BUILD_OUTPUTS),
    (".svelte-kit", PatternCategory.BUILD_OUTPUTS),
    (".output", PatternCategory.BUILD_OUTPUTS),
    ("*.egg-info", PatternCategory.BUILD_OUTPUTS),
    # Caches
    ("__pycache__", PatternCategory.CACHE),
    (".pytest_cache", PatternCategory.CACHE),
    (".mypy_cache", PatternCategory.CACHE),
    (".ruff_cache", PatternCategory.CACHE),
    (".turbo", PatternCategory.CACHE),
    (".parcel-cache", PatternCategory.CACHE),
    (".gradle", PatternCategory.CACHE),
    ("coverage", PatternCategory.CACHE),
    ("htmlcov", PatternCategory.CACHE),
    (".nyc_output", PatternCategory.CACHE),
    # IDE
    (".idea", PatternCategory.IDE),
)

# File name globs, grouped by category.
_FILE_PATTERNS: tuple[tuple[str, PatternCategory], ...] = (
    ("*.pyc", PatternCategory.CACHE),
    ("*.pyo", PatternCategory.CACHE),
    (".coverage", PatternCategory.CACHE),
    ("*.tsbuildinfo", PatternCategory.BUILD_OUTPUTS),
    (".eslintcache", PatternCategory.CACHE),
    ("*.log", PatternCategory.LOGS),
    ("npm-debug.log*", PatternCategory.LOGS),
    ("yarn-error.log*", PatternCategory.LOGS),
    (".DS_Store", PatternCategory.OTHER),
    ("Thumbs.db", PatternCategory.OTHER),
    ("*.swp", PatternCategory.IDE),
)

# Entries that are never cleaned, wherever they appear.
_EXCLUDE_PATTERNS: tuple[str, ...] = (
    ".git",
    ".hg",
    ".svn",
)


@dataclass(frozen=True, slots=True)
class PatternSet:
    """An immutable group of directory, file and exclude globs.

    Attributes:
        directories: Globs matched against directory names.
        files: Globs matched against file and symlink names.
        exclude: Globs that veto any match.
        categories: Category of each known pattern text.
    """

    directories: tuple[str, ...] = ()
    files: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    categories: tuple[tuple[str, PatternCategory], ...] = ()

    def get_category(self, pattern: str) -> PatternCategory:
        """Look up the category of a pattern text, OTHER when unknown.

        Args:
            pattern: Glob text to look up.

        Returns:
            The category registered for ``pattern``.
        """
        for known, category in self.categories:
            if known == pattern:
                return category
        return PatternCategory.OTHER

    @property
    def is_empty(self) -> bool:
        """Check if the set contains no patterns at all."""
        return not (self.directories or self.files or self.exclude)


def builtin_patterns() -> PatternSet:
    """Build the default pattern set.

    Returns:
        PatternSet with the built-in directory, file and exclude globs.
    """
    return PatternSet(
        directories=tuple(p for p, _ in _DIRECTORY_PATTERNS),
        files=tuple(p for p, _ in _FILE_PATTERNS),
        exclude=_EXCLUDE_PATTERNS,
        categories=_DIRECTORY_PATTERNS + _FILE_PATTERNS,
    )
