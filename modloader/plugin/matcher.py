"""
Rule Matchers.

Matching rules decide which plugins apply to a module and which modules a
stage ignores. The glob syntax itself is a pluggable capability: matchers
take any match(value, pattern) function and default to glob_match.
"""

from collections.abc import Callable, Iterable

from modloader.core.utils import glob_match
from modloader.plugin.errors import RegistrationError
from modloader.plugin.hooks import HookType

MatchFunc = Callable[[str, str], bool]


def pattern_list(patterns: str | Iterable[str]) -> list[str]:
    if isinstance(patterns, str):
        patterns = [patterns]
    try:
        result = list(patterns)
    except TypeError:
        raise RegistrationError(
            f"Matching rules must be a pattern or a list of patterns. Got: {patterns!r}"
        ) from None

    for pattern in result:
        if not isinstance(pattern, str):
            raise RegistrationError(f"Matching rule pattern must be a string. Got: {pattern!r}")

    return result


class RuleMatcher:
    """
    A set of patterns; a value matches if any pattern matches it.

    Example:
        matcher = RuleMatcher(["**/*.css"])
        matcher.match("x.css")  # True
    """

    def __init__(self, patterns: str | Iterable[str] = (), match: MatchFunc = glob_match):
        self._patterns: list[str] = []
        self._match = match
        self.add(patterns)

    @property
    def patterns(self) -> tuple[str, ...]:
        return tuple(self._patterns)

    def add(self, patterns: str | Iterable[str]) -> "RuleMatcher":
        """Add patterns, skipping ones already present."""
        for pattern in pattern_list(patterns):
            if pattern not in self._patterns:
                self._patterns.append(pattern)
        return self

    def match(self, value: str | None) -> bool:
        if value is None:
            return False
        return any(self._match(value, pattern) for pattern in self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def __repr__(self) -> str:
        return f"RuleMatcher({self._patterns!r})"


class IgnoreRules:
    """
    Per-stage name patterns the manager excludes from processing.

    Example:
        rules = IgnoreRules()
        rules.add("fetch", ["vendor/*"])
        rules.match("vendor/jquery", "fetch")  # True
    """

    def __init__(self, match: MatchFunc = glob_match):
        self._match = match
        self._rules: dict[HookType, RuleMatcher] = {}

    def add(self, stage: HookType | str, patterns: str | Iterable[str]) -> "IgnoreRules":
        hook = HookType.parse(stage)
        if hook not in self._rules:
            self._rules[hook] = RuleMatcher(match=self._match)
        self._rules[hook].add(patterns)
        return self

    def match(self, name: str, stage: HookType | str) -> bool:
        """Check if a module name is ignored for a stage."""
        matcher = self._rules.get(HookType.parse(stage))
        return matcher is not None and matcher.match(name)

    def clear(self, stage: HookType | str | None = None) -> None:
        if stage is None:
            self._rules.clear()
        else:
            self._rules.pop(HookType.parse(stage), None)
