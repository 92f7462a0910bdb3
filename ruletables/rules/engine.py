"""
Rule table evaluation engine.
"""

from types import MappingProxyType
from typing import Generic, Iterable, Mapping, Optional, Tuple

from ..shared.logging import get_logger
from ..shared.errors import RuleExecutionError, TransferDepthExceededError
from .models import C, R, Rule, normalize_name


class _TransferDepthReached(Exception):
    """Raised inside a table when nested transfers pass its depth limit."""

    def __init__(self, target: str):
        self.target = target
        super().__init__(target)


class Chain(Generic[C, R]):
    """An ordered, immutable sequence of rules."""

    def __init__(self, rules: Iterable[Rule] = ()):
        self._rules: Tuple[Rule, ...] = tuple(rules)

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def execute(self, context: C, table: "RuleTable[C, R]", depth: int = 0) -> Optional[R]:
        """Evaluate rules in order, returning the first result produced.

        Returns None when no rule produced a result, either because the
        rules were exhausted or because a terminal rule matched without
        producing one.
        """
        for rule in self._rules:
            if not rule.matches(context):
                continue

            result = rule.apply(context, table, depth)
            if result is not None:
                return result

            if rule.terminal:
                # goTo whose target decided nothing, or exit to policy
                return None

        return None


class RuleTable(Generic[C, R]):
    """A named set of chains with a policy per built-in chain.

    Tables are created by ``RuleTableBuilder.build()`` and are read-only
    afterwards. Only built-in chains can be executed directly; user chains
    are reachable through goTo/jumpTo rules only.
    """

    def __init__(self, name: str, chains: Mapping[str, Chain[C, R]],
                 policies: Mapping[str, Optional[R]], max_transfer_depth: int = 100):
        self.name = name
        self.max_transfer_depth = max_transfer_depth
        self._chains: Mapping[str, Chain[C, R]] = MappingProxyType(dict(chains))
        self._policies: Mapping[str, Optional[R]] = MappingProxyType(dict(policies))
        self.logger = get_logger("ruletables.engine")

    @property
    def built_in_chains(self) -> frozenset:
        return frozenset(self._policies)

    def __repr__(self) -> str:
        return f"RuleTable(name={self.name!r}, chains={len(self._chains)})"

    def execute(self, chain: str, context: C) -> Optional[R]:
        """Evaluate a built-in chain against a context.

        Returns the first result produced by the chain, or the chain's
        policy when no rule decided. Any fault raised while evaluating is
        raised as RuleExecutionError.
        """
        chain = normalize_name(chain)

        if chain not in self._policies:
            raise RuleExecutionError(
                f"Cannot invoke user chain '{chain}' in table '{self.name}'",
                self.name,
                chain
            )

        try:
            result = self._chains[chain].execute(context, self, 0)
        except _TransferDepthReached as e:
            self.logger.error(
                "Rule evaluation error", table=self.name, chain=chain, target=e.target,
                error="transfer depth limit exceeded"
            )
            raise TransferDepthExceededError(self.name, chain, self.max_transfer_depth, target=e.target) from None
        except Exception as e:
            self.logger.error("Rule evaluation error", table=self.name, chain=chain, error=str(e))
            raise RuleExecutionError(
                f"Error executing rule table '{self.name}', chain '{chain}'",
                self.name,
                chain,
                cause=e
            ) from e

        if result is None:
            self.logger.debug("Chain produced no result, applying policy", table=self.name, chain=chain)
            return self._policies[chain]

        return result

    def transfer(self, target: str, context: C, depth: int) -> Optional[R]:
        """Evaluate a transfer target at the given nesting depth."""
        if depth > self.max_transfer_depth:
            raise _TransferDepthReached(target)

        chain = self._chains.get(target)
        if chain is None:
            raise LookupError(f"Chain '{target}' is not defined in table '{self.name}'")

        return chain.execute(context, self, depth)
