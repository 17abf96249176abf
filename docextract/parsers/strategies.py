"""
Ordered, named extraction strategies.

A field is extracted by trying each strategy in priority order; the first
non-empty value wins and the strategy name is kept for auditing.
"""

from typing import Callable, NamedTuple, Optional, Sequence


class Strategy(NamedTuple):
    name: str
    fn: Callable[..., Optional[str]]


class StrategyHit(NamedTuple):
    value: Optional[str]
    strategy: Optional[str]


def first_hit(strategies: Sequence[Strategy], *args, accept: Optional[Callable[[str], bool]] = None) -> StrategyHit:
    """Run strategies in order; the first value that is non-empty (and accepted) wins."""
    for strategy in strategies:
        value = strategy.fn(*args)
        if not value:
            continue
        if accept is not None and not accept(value):
            continue
        return StrategyHit(value, strategy.name)
    return StrategyHit(None, None)
