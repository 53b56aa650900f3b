"""
Test Suite for the Monetary Metrics Engine

Includes:
- Unit tests for calculations (analysis/tests)
- Storage tests against in-memory SQLite (storage/tests)
- Orchestrator integration tests (pipeline/tests)
- End-to-end run properties: determinism, idempotence, worked examples
"""
