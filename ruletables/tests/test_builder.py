"""
Unit tests for RuleTableBuilder construction and validation.
"""

import typing

import pytest
from unittest.mock import MagicMock
from structlog.testing import capture_logs

from ruletables.rules.builder import RuleTableBuilder, ChainBuilder, RuleBuilder
from ruletables.rules.engine import RuleTable
from ruletables.rules.models import (
    Action, Effect, Predicate, Rule, SideEffect, ExitResult, Transfer, TransferMode, always
)
from ruletables.shared.config import RuleTableSettings
from ruletables.shared.errors import ConstructionError


class TestRuleTableBuilder:
    """Test cases for RuleTableBuilder."""

    @pytest.fixture
    def builder(self):
        """Create builder with a single INPUT built-in chain."""
        return RuleTableBuilder("firewall", {"input"})

    def test_built_in_chains_are_normalized(self):
        """Test that built-in names are trimmed, upper-cased and filtered."""
        builder = RuleTableBuilder(" firewall ", [" input", "Output ", None, "   "])

        assert builder.name == "firewall"
        assert builder.built_in_chains == frozenset({"INPUT", "OUTPUT"})

    def test_chain_returns_same_builder_for_equal_names(self, builder):
        """Test that chain names equal after normalization share a builder."""
        first = builder.chain("checks")
        second = builder.chain("  CHECKS ")

        assert first is second
        assert first.name == "CHECKS"

    def test_fluent_handles(self, builder):
        """Test that each fluent call returns the expected owning builder."""
        chain = builder.chain("input")

        rule = chain.when(always)
        assert isinstance(rule, RuleBuilder)
        assert rule.chain is chain

        assert rule.exit_with("ACCEPT") is chain
        assert chain.when(always).execute(print) is chain
        assert chain.when(always).jump_to("a") is chain
        assert chain.when(always).go_to("a") is chain

        assert chain.policy("DROP") is chain
        assert chain.execute(print) is chain
        assert chain.jump_to("a") is chain
        assert chain.exit_with("ACCEPT") is builder
        assert chain.go_to("a") is builder
        assert chain.end() is builder

    def test_rules_accumulate_in_declaration_order(self, builder):
        """Test that accumulated rules compile in order with the right effects."""
        action = MagicMock()
        builder.chain("input") \
            .when(always).execute(action) \
            .when(always).jump_to("a") \
            .when(always).go_to("b") \
            .exit_with("ACCEPT")

        rules = [rule.compile() for rule in builder.chain("input").rule_builders]

        assert [type(rule.effect) for rule in rules] == [SideEffect, Transfer, Transfer, ExitResult]
        assert [rule.terminal for rule in rules] == [False, False, True, True]
        assert rules[1].effect == Transfer("A", TransferMode.JUMP)
        assert rules[2].effect == Transfer("B", TransferMode.GOTO)

    def test_default_predicate_is_always(self, builder):
        """Test that unconditional rules match every context."""
        builder.chain("input").exit_with("ACCEPT")

        rule = builder.chain("input").rule_builders[0].compile()

        assert rule.predicate is always
        assert rule.matches(None) is True

    def test_builder_accumulates_without_validating(self):
        """Test that invalid input is accepted until build()."""
        builder = RuleTableBuilder("", set())
        builder.chain("").policy("DROP").go_to("input")

        with pytest.raises(ConstructionError):
            builder.build()

    def test_build_returns_table(self, builder):
        """Test that a valid definition builds a table."""
        builder.chain("input").policy("DROP")

        table = builder.build()

        assert isinstance(table, RuleTable)
        assert table.name == "firewall"

    def test_build_logs_summary(self, builder):
        """Test that a successful build is logged."""
        builder.chain("input").policy("DROP").when(always).jump_to("checks")
        builder.chain("checks").exit_with("ACCEPT")

        with capture_logs() as logs:
            builder.build()

        built = [log for log in logs if log["event"] == "Rule table built"]
        assert len(built) == 1
        assert built[0]["chains"] == 2
        assert built[0]["rules"] == 2

    def test_settings_provide_defaults(self):
        """Test that settings drive depth and strictness unless overridden."""
        settings = RuleTableSettings(max_transfer_depth=7, strict_transfer_targets=True)

        builder = RuleTableBuilder("t", {"input"}, settings=settings)
        assert builder.max_transfer_depth == 7
        assert builder.strict_transfer_targets is True

        builder = RuleTableBuilder("t", {"input"}, settings=settings,
                                   strict_transfer_targets=False, max_transfer_depth=3)
        assert builder.max_transfer_depth == 3
        assert builder.strict_transfer_targets is False

        builder.chain("input").policy("DROP")
        assert builder.build().max_transfer_depth == 3


class TestRuleTableBuilderValidation:
    """Test cases for build-time validation."""

    def test_empty_table_name(self):
        """Test that a blank table name is rejected."""
        builder = RuleTableBuilder("   ", {"input"})

        with pytest.raises(ConstructionError) as exc_info:
            builder.build()

        assert "empty name" in str(exc_info.value)
        assert exc_info.value.code == "CONSTRUCTION_ERROR"

    def test_none_table_name(self):
        """Test that a missing table name is rejected."""
        with pytest.raises(ConstructionError):
            RuleTableBuilder(None, {"input"}).build()

    @pytest.mark.parametrize("built_ins", [set(), None, {"  ", None}])
    def test_empty_built_in_chains(self, built_ins):
        """Test that a table without built-in chains is rejected."""
        builder = RuleTableBuilder("firewall", built_ins)

        with pytest.raises(ConstructionError) as exc_info:
            builder.build()

        assert "at least one built-in chain" in str(exc_info.value)
        assert exc_info.value.details["table"] == "firewall"

    def test_empty_chain_name(self):
        """Test that a chain with a blank name is rejected."""
        builder = RuleTableBuilder("firewall", {"input"})
        builder.chain("  ").exit_with("ACCEPT")

        with pytest.raises(ConstructionError) as exc_info:
            builder.build()

        assert "chain with empty name" in str(exc_info.value)

    def test_policy_on_user_chain(self):
        """Test that user chains may not carry a policy."""
        builder = RuleTableBuilder("firewall", {"input"})
        builder.chain("input").policy("DROP")
        builder.chain("checks").policy("ACCEPT")

        with pytest.raises(ConstructionError) as exc_info:
            builder.build()

        assert "Cannot add policy to user chain 'CHECKS'" in str(exc_info.value)
        assert exc_info.value.details["chain"] == "CHECKS"

    def test_none_policy_on_user_chain(self):
        """Test that an explicit None policy still counts as a policy."""
        builder = RuleTableBuilder("firewall", {"input"})
        builder.chain("checks").policy(None)

        with pytest.raises(ConstructionError):
            builder.build()

    @pytest.mark.parametrize("transfer", ["go_to", "jump_to"])
    def test_transfer_to_built_in_chain(self, transfer):
        """Test that built-in chains cannot be transfer targets."""
        builder = RuleTableBuilder("firewall", {"input", "output"})
        rule = builder.chain("checks").when(always)
        getattr(rule, transfer)(" output")

        with pytest.raises(ConstructionError) as exc_info:
            builder.build()

        assert "built-in chain 'OUTPUT'" in str(exc_info.value)
        assert exc_info.value.details["target"] == "OUTPUT"
        assert exc_info.value.details["chain"] == "CHECKS"

    def test_rule_without_effect(self):
        """Test that a when() never completed with an effect is rejected."""
        builder = RuleTableBuilder("firewall", {"input"})
        builder.chain("input").when(always)

        with pytest.raises(ConstructionError) as exc_info:
            builder.build()

        assert "Rule without action, result or target" in str(exc_info.value)

    def test_unresolved_target_allowed_by_default(self):
        """Test that missing transfer targets do not fail the build by default."""
        builder = RuleTableBuilder("firewall", {"input"})
        builder.chain("input").go_to("missing")

        assert isinstance(builder.build(), RuleTable)

    def test_unresolved_target_rejected_when_strict(self):
        """Test that strict mode validates transfer targets eagerly."""
        builder = RuleTableBuilder("firewall", {"input"}, strict_transfer_targets=True)
        builder.chain("input").jump_to("present").go_to("missing")
        builder.chain("present").execute(print)

        with pytest.raises(ConstructionError) as exc_info:
            builder.build()

        assert "undefined chain 'MISSING'" in str(exc_info.value)

    def test_validation_failure_is_logged(self):
        """Test that rejected definitions are logged."""
        builder = RuleTableBuilder("firewall", set())

        with capture_logs() as logs:
            with pytest.raises(ConstructionError):
                builder.build()

        assert logs[0]["event"] == "Rule table validation failed"
        assert logs[0]["log_level"] == "warning"
        assert logs[0]["table"] == "firewall"


class TestNoneResults:
    """Test cases for None as a rule result or policy."""

    def test_exit_with_none_exits_to_policy(self):
        """Test that exit_with(None) stops the chain and the policy applies."""
        later = MagicMock()
        builder = RuleTableBuilder("firewall", {"input"})
        builder.chain("input").policy("DROP") \
            .when(always).exit_with(None) \
            .execute(later)
        table = builder.build()

        assert table.execute("INPUT", {}) == "DROP"
        later.assert_not_called()


class TestRuleTypes:
    """Test cases for the typed rule aliases."""

    def test_callables_are_parameterized_by_context(self):
        """Test that predicates and actions take the context type."""
        assert typing.get_args(Predicate[dict]) == ([dict], bool)
        assert typing.get_args(Action[dict]) == ([dict], type(None))

    def test_effect_is_union_of_effect_kinds(self):
        """Test that a rule effect is one of the three effect kinds."""
        assert set(typing.get_args(Effect)) == {SideEffect, ExitResult, Transfer}
        assert len(Rule.__parameters__) == 2
