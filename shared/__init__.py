"""
Shared utilities for the rule group reconciler.

This package aggregates the ambient building blocks used by the engine:

- config: Reconciler configuration via pydantic-settings
- logging: Structured logging with reconciliation correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types
- retry: Backoff policy shared by every retry loop

Engine logic lives in service_rule_groups. Do not import from
service_rule_groups into shared/.
"""
