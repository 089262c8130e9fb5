"""
Rule group reconciliation package.

Drives a remote WAF rule group towards a desired set of activated rules.
It provides:

- app.rules: ActivatedRule model, record codec and set differ.
- app.tokens: Change-token retry loop serializing every mutation.
- app.adapters: Remote API protocol, error classification and an
  in-memory implementation.
- app.reconciler: Create/Read/Update/Delete lifecycle orchestration.

Guidelines:
- Every mutation goes through the change-token retryer; nothing else
  decides retries.
- Submit all inserts and deletes of one update in a single request.
"""
