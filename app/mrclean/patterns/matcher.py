"""Glob pattern matching for cleaning rules.

The PatternMatcher compiles directory, file and exclude globs from the
built-in, user config and command-line pattern sets into a single
classifier. Matching follows these steps:

1. The path is checked against the exclude rules (full relative path
   and basename). Any exclude match means "no match", whatever the
   priority of competing include rules.
2. Directories are checked against directory rules, files and symlinks
   against file rules, using the basename.
3. Among several matching include rules the winner is chosen by source
   (command line, then user config, then built-in) and then by the
   rule's position in its list.

All globs are compiled at construction time, so a malformed pattern
fails there and never while a scan is running.
"""

import fnmatch
import logging
import os
import re
import stat
from dataclasses import dataclass
from pathlib import Path, PurePath

from mrclean.core.errors import MrCleanError
from mrclean.models.item import ItemKind, PatternCategory, PatternMatch, PatternSource
from mrclean.patterns.builtin import PatternSet

logger = logging.getLogger(__name__)


class PatternError(MrCleanError):
    """Raised when a glob pattern cannot be compiled."""


@dataclass(frozen=True, slots=True)
class PatternRule:
    """A compiled glob together with its match metadata.

    Attributes:
        pattern: Original glob text.
        source: Pattern set the rule came from.
        priority: Position of the rule within its source list.
        category: Display category.
        regex: Compiled matcher for the glob.
    """

    pattern: str
    source: PatternSource
    priority: int
    category: PatternCategory
    regex: re.Pattern[str]

    def matches(self, name: str) -> bool:
        """Check if a (case-normalized) name matches this rule."""
        return self.regex.match(name) is not None

    def to_match(self) -> PatternMatch:
        """Build the PatternMatch record reported for this rule."""
        return PatternMatch(
            pattern=self.pattern,
            priority=self.priority,
            source=self.source,
            category=self.category,
        )


def _validate_bracket_class(pattern: str, body: str) -> None:
    """Reject character classes with reversed ranges such as ``[z-a]``."""
    i = 0
    while i < len(body):
        if i + 2 < len(body) and body[i + 1] == "-":
            low, high = body[i], body[i + 2]
            if low > high:
                msg = f"Invalid pattern '{pattern}': bad character range {low}-{high}"
                raise PatternError(msg)
            i += 3
        else:
            i += 1


def _validate_glob(pattern: str) -> None:
    """Check glob syntax that fnmatch would silently accept.

    Args:
        pattern: Glob text to validate.

    Raises:
        PatternError: If the pattern is empty, has an unterminated
            character class, or a class with an invalid range.
    """
    if not pattern or not pattern.strip():
        msg = "Pattern cannot be empty"
        raise PatternError(msg)

    i = 0
    n = len(pattern)
    while i < n:
        if pattern[i] != "[":
            i += 1
            continue
        j = i + 1
        if j < n and pattern[j] == "!":
            j += 1
        # A leading ']' is a literal member of the class
        if j < n and pattern[j] == "]":
            j += 1
        close = pattern.find("]", j)
        if close == -1:
            msg = f"Invalid pattern '{pattern}': unterminated character class"
            raise PatternError(msg)
        body = pattern[i + 1 : close].lstrip("!")
        _validate_bracket_class(pattern, body)
        i = close + 1


def compile_glob(pattern: str) -> re.Pattern[str]:
    """Compile a glob into a regular expression.

    Args:
        pattern: Glob text (``*``, ``?`` and ``[...]`` are supported).

    Returns:
        Compiled regular expression matching the whole name.

    Raises:
        PatternError: If the glob is malformed.
    """
    _validate_glob(pattern)
    try:
        return re.compile(fnmatch.translate(os.path.normcase(pattern)))
    except re.error as e:
        msg = f"Invalid pattern '{pattern}': {e}"
        raise PatternError(msg) from e


class PatternMatcher:
    """Classifies paths against compiled include and exclude rules.

    Args:
        builtin: Built-in default patterns.
        user: Patterns from the user configuration file.
        cli: Patterns given on the command line.

    Raises:
        PatternError: If any glob in any set is malformed.
    """

    def __init__(
        self,
        builtin: PatternSet,
        user: PatternSet | None = None,
        cli: PatternSet | None = None,
    ) -> None:
        sources: list[tuple[PatternSource, PatternSet]] = [(PatternSource.BUILTIN, builtin)]
        if user is not None and not user.is_empty:
            sources.append((PatternSource.USER_CONFIG, user))
        if cli is not None and not cli.is_empty:
            sources.append((PatternSource.COMMAND_LINE, cli))

        directory_rules: list[PatternRule] = []
        file_rules: list[PatternRule] = []
        exclude_rules: list[re.Pattern[str]] = []

        for source, pattern_set in sources:
            directory_rules.extend(self._compile_rules(pattern_set.directories, source, builtin))
            file_rules.extend(self._compile_rules(pattern_set.files, source, builtin))
            exclude_rules.extend(compile_glob(p) for p in pattern_set.exclude)

        # Pre-sorted by tie-break order so the first hit is the winner
        self._directory_rules = tuple(sorted(directory_rules, key=_rule_order))
        self._file_rules = tuple(sorted(file_rules, key=_rule_order))
        self._exclude_rules = tuple(exclude_rules)

        logger.debug(
            "Compiled %d directory, %d file and %d exclude patterns",
            len(self._directory_rules),
            len(self._file_rules),
            len(self._exclude_rules),
        )

    @staticmethod
    def _compile_rules(
        patterns: tuple[str, ...],
        source: PatternSource,
        builtin: PatternSet,
    ) -> list[PatternRule]:
        return [
            PatternRule(
                pattern=pattern,
                source=source,
                priority=index,
                category=builtin.get_category(pattern),
                regex=compile_glob(pattern),
            )
            for index, pattern in enumerate(patterns)
        ]

    @property
    def directory_rules(self) -> tuple[PatternRule, ...]:
        """Directory rules in tie-break order."""
        return self._directory_rules

    @property
    def file_rules(self) -> tuple[PatternRule, ...]:
        """File rules in tie-break order."""
        return self._file_rules

    def is_excluded(self, path: str | PurePath) -> bool:
        """Check if a path is vetoed by an exclude rule.

        Exclude globs are tested against the full relative path and
        against its basename, so a bare name such as ``.git`` excludes
        that entry at any depth.

        Args:
            path: Path relative to the scan root (absolute paths work too).

        Returns:
            True if any exclude rule matches.
        """
        pure = PurePath(path)
        full = os.path.normcase(pure.as_posix())
        name = os.path.normcase(pure.name)
        return any(rule.match(full) or rule.match(name) for rule in self._exclude_rules)

    def classify(self, path: str | PurePath, kind: ItemKind | None = None) -> PatternMatch | None:
        """Classify a path against the compiled rules.

        Args:
            path: Path relative to the scan root.
            kind: Entry type if known. Directories are tested against
                directory rules, files and symlinks against file rules.
                With no hint both rule sets are tried.

        Returns:
            The winning PatternMatch, or None if nothing matches or the
            path is excluded.
        """
        if self.is_excluded(path):
            return None

        name = os.path.normcase(PurePath(path).name)
        if not name:
            return None

        candidates: list[PatternRule] = []
        if kind in (None, ItemKind.DIRECTORY):
            hit = _first_match(self._directory_rules, name)
            if hit is not None:
                candidates.append(hit)
        if kind in (None, ItemKind.FILE, ItemKind.SYMLINK):
            hit = _first_match(self._file_rules, name)
            if hit is not None:
                candidates.append(hit)

        if not candidates:
            return None
        return min(candidates, key=_rule_order).to_match()

    def matches(self, path: Path) -> PatternMatch | None:
        """Classify a path on disk, reading its type with lstat.

        Args:
            path: Filesystem path to classify.

        Returns:
            The winning PatternMatch, or None.
        """
        try:
            mode = path.lstat().st_mode
        except OSError:
            return self.classify(path)

        if stat.S_ISLNK(mode):
            kind = ItemKind.SYMLINK
        elif stat.S_ISDIR(mode):
            kind = ItemKind.DIRECTORY
        else:
            kind = ItemKind.FILE
        return self.classify(path, kind)


def _rule_order(rule: PatternRule) -> tuple[int, int]:
    return rule.to_match().sort_key


def _first_match(rules: tuple[PatternRule, ...], name: str) -> PatternRule | None:
    for rule in rules:
        if rule.matches(name):
            return rule
    return None
