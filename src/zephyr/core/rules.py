"""Rule matching: first rule whose pattern and method fit the request."""

from __future__ import annotations

import re
from collections.abc import Sequence

import httpx

from zephyr.core.config import CacheRule


def rule_matches(
    rule: CacheRule,
    url: str,
    method: str,
    pattern: re.Pattern[str] | None = None,
) -> bool:
    """Whether ``rule`` applies to a request.

    The pattern is searched anywhere in the full URL. The method comparison
    is an exact, case-sensitive string compare.
    """
    regex = pattern if pattern is not None else re.compile(rule.pattern)
    if regex.search(url) is None:
        return False
    return rule.method is None or rule.method == method


def match_rule(rules: Sequence[CacheRule], request: httpx.Request) -> CacheRule | None:
    """Return the first rule matching ``request``, or None."""
    url = str(request.url)
    for rule in rules:
        if rule_matches(rule, url, request.method):
            return rule
    return None


class RuleMatcher:
    """Ordered rule list with patterns compiled once.

    Rules are fixed for the lifetime of the matcher.
    """

    def __init__(self, rules: Sequence[CacheRule]) -> None:
        self._rules = tuple(rules)
        self._compiled = tuple(re.compile(rule.pattern) for rule in self._rules)

    def match(self, request: httpx.Request) -> CacheRule | None:
        """Return the first rule matching ``request``, or None."""
        url = str(request.url)
        for rule, pattern in zip(self._rules, self._compiled):
            if rule_matches(rule, url, request.method, pattern):
                return rule
        return None
