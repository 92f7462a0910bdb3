"""
Rule data models for the rule table engine.

A rule pairs a predicate over the evaluation context with exactly one
effect. Effects are evaluated with the owning table passed in, so that
transfer targets are resolved by name at evaluation time and no effect
holds a reference back to its table.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from .engine import RuleTable

C = TypeVar("C")
R = TypeVar("R")

Predicate = Callable[[C], bool]
Action = Callable[[C], None]


def normalize_name(name: Optional[str]) -> str:
    """Normalize a table or chain name: trimmed and upper-cased."""
    if name is None:
        return ""
    return name.strip().upper()


def always(context: Any) -> bool:
    """Predicate matching every context."""
    return True


class TransferMode(str, Enum):
    """Chain transfer modes."""
    GOTO = "goto"
    JUMP = "jump"


@dataclass(frozen=True)
class SideEffect(Generic[C]):
    """Runs an action for its side effect; never produces a result."""
    action: Action[C]

    def apply(self, context: C, table: "RuleTable", depth: int) -> None:
        self.action(context)
        return None


@dataclass(frozen=True)
class ExitResult(Generic[R]):
    """Produces a fixed result."""
    result: R

    def apply(self, context: Any, table: "RuleTable", depth: int) -> Optional[R]:
        return self.result


@dataclass(frozen=True)
class Transfer:
    """Evaluates another chain of the same table and yields its outcome."""
    target: str
    mode: TransferMode

    def apply(self, context: Any, table: "RuleTable", depth: int) -> Any:
        return table.transfer(self.target, context, depth + 1)


Effect = Union[SideEffect, ExitResult, Transfer]


@dataclass(frozen=True)
class Rule(Generic[C, R]):
    """A compiled rule.

    ``terminal`` rules stop evaluation of their chain once matched, even
    when their effect produced no result.
    """
    predicate: Predicate[C]
    effect: Effect
    terminal: bool

    def matches(self, context: C) -> bool:
        return bool(self.predicate(context))

    def apply(self, context: C, table: "RuleTable", depth: int) -> Optional[R]:
        return self.effect.apply(context, table, depth)
