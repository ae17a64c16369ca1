"""
Ordered Rule Tables for Mindrift

Several classifications in the engine are "first matching rule wins"
cascades: warning severity tiers, the drift mode table and the change
type cascade. They are expressed as ordered lists of Rule objects so the
evaluation order is part of the data rather than of nested if/else blocks.

Design Decisions:
    - Rules are evaluated top to bottom, stopping at the first match
    - A rule's result may be a value or a callable of the same context,
      for results that depend on the input (e.g. computed confidence)
    - A table without a catch-all rule raises LookupError when nothing
      matches, so incomplete tables fail loudly
"""

from dataclasses import dataclass
from typing import Callable, Generic, Sequence, TypeVar, Union

C = TypeVar("C")
R = TypeVar("R")


@dataclass(frozen=True)
class Rule(Generic[C, R]):
    """
    A single (predicate, result) pair.

    Attributes:
        name: Short identifier, used in debug logs and tests
        predicate: Called with the context, returns True when the rule applies
        result: The value to return, or a callable producing it from the context
    """

    name: str
    predicate: Callable[[C], bool]
    result: Union[R, Callable[[C], R]]

    def resolve(self, context: C) -> R:
        """Produce this rule's result for the given context."""
        if callable(self.result):
            return self.result(context)
        return self.result


def always(_context: object) -> bool:
    """Predicate for catch-all rules."""
    return True


def first_match(rules: Sequence[Rule[C, R]], context: C) -> tuple[str, R]:
    """
    Evaluate rules in order and return the first matching one.

    Args:
        rules: Ordered rule table
        context: Value passed to every predicate

    Returns:
        Tuple of (rule name, resolved result)

    Raises:
        LookupError: If no rule matches
    """
    for rule in rules:
        if rule.predicate(context):
            return rule.name, rule.resolve(context)
    raise LookupError("no rule matched")
