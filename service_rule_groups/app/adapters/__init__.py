"""
Remote API adapters.

- api: RuleGroupApi protocol and remote error-code classification.
- memory_api: In-memory RuleGroupApi honouring change-token semantics.
"""
