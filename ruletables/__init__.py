"""
iptables-style rule tables.

A table holds named chains of predicate-guarded rules. Built-in chains
are the entry points and carry a policy, the result returned when no
rule decides; user chains are reached only through goTo/jumpTo rules.
"""

from .rules.builder import RuleTableBuilder, ChainBuilder, RuleBuilder
from .rules.engine import RuleTable, Chain
from .rules.models import Rule, TransferMode, always, normalize_name
from .shared.config import RuleTableSettings, get_settings
from .shared.errors import (
    RuleTableException, ConstructionError, RuleExecutionError,
    TransferDepthExceededError, ErrorResponse
)
from .shared.logging import configure_logging, get_logger

__all__ = [
    "RuleTableBuilder",
    "ChainBuilder",
    "RuleBuilder",
    "RuleTable",
    "Chain",
    "Rule",
    "TransferMode",
    "always",
    "normalize_name",
    "RuleTableSettings",
    "get_settings",
    "RuleTableException",
    "ConstructionError",
    "RuleExecutionError",
    "TransferDepthExceededError",
    "ErrorResponse",
    "configure_logging",
    "get_logger",
]

__version__ = "1.0.0"
