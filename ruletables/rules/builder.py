"""
Fluent construction and validation of rule tables.

Nothing is validated while rules are accumulated; ``build()`` validates
the whole definition and either returns a complete table or raises
ConstructionError.

    builder = RuleTableBuilder("firewall", {"input"})
    builder.chain("input").policy("DROP") \\
        .when(lambda ctx: ctx["port"] == 22).exit_with("ACCEPT")
    table = builder.build()
"""

from typing import Any, Dict, Generic, Iterable, List, Optional

from ..shared.config import RuleTableSettings, get_settings
from ..shared.errors import ConstructionError
from ..shared.logging import get_logger
from .engine import Chain, RuleTable
from .models import (
    C, R, Action, Effect, Predicate, Rule, SideEffect, ExitResult, Transfer,
    TransferMode, always, normalize_name
)

_UNSET = object()


class RuleBuilder(Generic[C, R]):
    """A rule whose predicate is known and whose effect is pending."""

    def __init__(self, chain: "ChainBuilder[C, R]", predicate: Optional[Predicate[C]] = None):
        self.chain = chain
        self.predicate = predicate
        self.effect: Optional[Effect] = None

    def execute(self, action: Action[C]) -> "ChainBuilder[C, R]":
        self.effect = SideEffect(action)
        return self.chain

    def exit_with(self, result: R) -> "ChainBuilder[C, R]":
        """Stop the chain with a result.

        A None result produces no value, so the rule stops the chain and
        the caller falls back to the policy.
        """
        self.effect = ExitResult(result)
        return self.chain

    def jump_to(self, chain: str) -> "ChainBuilder[C, R]":
        self.effect = Transfer(normalize_name(chain), TransferMode.JUMP)
        return self.chain

    def go_to(self, chain: str) -> "ChainBuilder[C, R]":
        self.effect = Transfer(normalize_name(chain), TransferMode.GOTO)
        return self.chain

    def compile(self) -> Rule[C, R]:
        """Compile into an executable rule."""
        predicate = self.predicate if self.predicate is not None else always

        if isinstance(self.effect, SideEffect):
            return Rule(predicate, self.effect, terminal=False)
        if isinstance(self.effect, ExitResult):
            return Rule(predicate, self.effect, terminal=True)
        if isinstance(self.effect, Transfer):
            return Rule(predicate, self.effect, terminal=self.effect.mode == TransferMode.GOTO)

        raise ValueError("Rule has no effect")


class ChainBuilder(Generic[C, R]):
    """Accumulates the policy and rules of one chain."""

    def __init__(self, table: "RuleTableBuilder[C, R]", name: str):
        self.table = table
        self.name = name
        self.policy_value: Any = _UNSET
        self.rule_builders: List[RuleBuilder[C, R]] = []

    @property
    def has_policy(self) -> bool:
        return self.policy_value is not _UNSET

    def policy(self, result: R) -> "ChainBuilder[C, R]":
        """Set the result returned when no rule decides.

        Only built-in chains may carry a policy; an explicit None still
        counts as one and is rejected on user chains at build time.
        """
        self.policy_value = result
        return self

    def when(self, predicate: Predicate[C]) -> RuleBuilder[C, R]:
        rule_builder = RuleBuilder(self, predicate)
        self.rule_builders.append(rule_builder)
        return rule_builder

    def execute(self, action: Action[C]) -> "ChainBuilder[C, R]":
        return self._add(RuleBuilder(self)).execute(action)

    def exit_with(self, result: R) -> "RuleTableBuilder[C, R]":
        """Unconditional exit; a None result exits to the policy."""
        self._add(RuleBuilder(self)).exit_with(result)
        return self.table

    def jump_to(self, chain: str) -> "ChainBuilder[C, R]":
        return self._add(RuleBuilder(self)).jump_to(chain)

    def go_to(self, chain: str) -> "RuleTableBuilder[C, R]":
        self._add(RuleBuilder(self)).go_to(chain)
        return self.table

    def end(self) -> "RuleTableBuilder[C, R]":
        """Return to the owning table builder."""
        return self.table

    def _add(self, rule_builder: RuleBuilder[C, R]) -> RuleBuilder[C, R]:
        self.rule_builders.append(rule_builder)
        return rule_builder


class RuleTableBuilder(Generic[C, R]):
    """Builder for RuleTable instances."""

    def __init__(self, name: str, built_in_chains: Optional[Iterable[Optional[str]]],
                 settings: Optional[RuleTableSettings] = None,
                 strict_transfer_targets: Optional[bool] = None,
                 max_transfer_depth: Optional[int] = None):
        self.logger = get_logger("ruletables.builder")
        self.settings = settings or get_settings()
        self.name = (name or "").strip()
        self.built_in_chains = frozenset(
            normalize_name(chain) for chain in (built_in_chains or ())
            if chain is not None and chain.strip()
        )
        self.strict_transfer_targets = (
            self.settings.strict_transfer_targets
            if strict_transfer_targets is None else strict_transfer_targets
        )
        self.max_transfer_depth = (
            self.settings.max_transfer_depth
            if max_transfer_depth is None else max_transfer_depth
        )
        self.chain_builders: Dict[str, ChainBuilder[C, R]] = {}

    def chain(self, name: str) -> ChainBuilder[C, R]:
        """Get the builder for a chain, creating it on first use."""
        name = normalize_name(name)
        chain_builder = self.chain_builders.get(name)
        if chain_builder is None:
            chain_builder = ChainBuilder(self, name)
            self.chain_builders[name] = chain_builder
        return chain_builder

    def build(self) -> RuleTable[C, R]:
        """Validate the accumulated definition and compile it."""
        try:
            self._validate()
        except ConstructionError as e:
            self.logger.warning("Rule table validation failed", table=self.name, reason=e.message)
            raise

        chains: Dict[str, Chain[C, R]] = {}
        policies: Dict[str, Optional[R]] = {chain: None for chain in self.built_in_chains}

        for name, chain_builder in self.chain_builders.items():
            chains[name] = Chain(rule.compile() for rule in chain_builder.rule_builders)
            if name in self.built_in_chains and chain_builder.has_policy:
                policies[name] = chain_builder.policy_value

        # Built-in chains that were never declared are still entry points
        for name in self.built_in_chains:
            chains.setdefault(name, Chain())

        table = RuleTable(self.name, chains, policies, max_transfer_depth=self.max_transfer_depth)

        self.logger.info(
            "Rule table built",
            table=self.name,
            chains=len(chains),
            rules=sum(len(chain) for chain in chains.values())
        )

        return table

    def _validate(self):
        if not self.name:
            raise ConstructionError("Cannot create table with empty name")

        if not self.built_in_chains:
            raise ConstructionError(
                f"Table '{self.name}' must contain at least one built-in chain",
                table=self.name
            )

        for name, chain_builder in self.chain_builders.items():
            if not name:
                raise ConstructionError(
                    f"Table '{self.name}' may not contain chain with empty name",
                    table=self.name
                )

            # Only built-in chains carry policies
            if chain_builder.has_policy and name not in self.built_in_chains:
                raise ConstructionError(
                    f"Cannot add policy to user chain '{name}' in table '{self.name}'",
                    table=self.name,
                    details={"chain": name}
                )

            for rule_builder in chain_builder.rule_builders:
                effect = rule_builder.effect
                if effect is None:
                    raise ConstructionError(
                        f"Rule without action, result or target in table '{self.name}', chain '{name}'",
                        table=self.name,
                        details={"chain": name}
                    )

                if not isinstance(effect, Transfer):
                    continue

                if effect.target in self.built_in_chains:
                    raise ConstructionError(
                        f"Cannot jump to or go to built-in chain '{effect.target}' in "
                        f"table '{self.name}', chain '{name}'",
                        table=self.name,
                        details={"chain": name, "target": effect.target}
                    )

                if self.strict_transfer_targets and effect.target not in self.chain_builders:
                    raise ConstructionError(
                        f"Cannot jump to or go to undefined chain '{effect.target}' in "
                        f"table '{self.name}', chain '{name}'",
                        table=self.name,
                        details={"chain": name, "target": effect.target}
                    )
