"""
Shared utilities for the rule table engine.

This package aggregates the cross-cutting building blocks consumed by
the rules package:

- config: Engine settings via pydantic-settings
- logging: Structured logging with correlation context
- errors: Canonical error types and responses

Do not import from ruletables.rules into shared/.
"""
