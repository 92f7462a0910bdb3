"""
Rules package.

Defines the rule table model, its evaluation engine and the fluent
builder that constructs it.

Modules of interest:
- models: Rule, effect kinds and name normalization.
- engine: Chain and RuleTable evaluation.
- builder: RuleTableBuilder and its chain/rule builders, with validation.

Built tables are immutable and can be evaluated concurrently as long as
the host-supplied predicates and actions are thread-safe.
"""
