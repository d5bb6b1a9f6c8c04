"""Ordered try-then-degrade chains.

Consent dismissal layers and the injection candidate walk are all expressed as
a list of objects with an async ``attempt(target)`` returning an :class:`Outcome`;
:func:`first_success` runs them in order and stops at the first success.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Protocol

from .logging import jlog


@dataclass(frozen=True)
class Outcome:
    succeeded: bool
    reason: str | None = None
    value: Any = None

    @classmethod
    def ok(cls, value: Any = None) -> Outcome:
        return cls(True, None, value)

    @classmethod
    def fail(cls, reason: str) -> Outcome:
        return cls(False, reason)


class Strategy(Protocol):
    name: str

    async def attempt(self, target: Any) -> Outcome: ...


async def first_success(
    strategies: Iterable[Strategy],
    target: Any,
    *,
    chain: str,
) -> tuple[Outcome | None, list[tuple[str, Outcome]]]:
    """Run ``strategies`` in order; return the winning outcome (or None) and every failure."""

    failures: list[tuple[str, Outcome]] = []
    for strategy in strategies:
        outcome = await strategy.attempt(target)
        if outcome.succeeded:
            jlog("debug", event="strategy_succeeded", chain=chain, strategy=strategy.name)
            return outcome, failures
        failures.append((strategy.name, outcome))
        jlog("debug", event="strategy_failed", chain=chain, strategy=strategy.name, reason=outcome.reason)
    return None, failures


__all__ = ["Outcome", "Strategy", "first_success"]
