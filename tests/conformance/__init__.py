"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the lending engine.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. debt_properties.py - Debt replay never goes negative, interest first
2. engine_atomicity.py - Rejected calls leave every table unchanged
3. liquidation_idempotency.py - A repeated sweep is a no-op
4. ratio_monotonicity.py - The ratio falls when a held token's price falls

These tests use hypothesis for property-based testing.
"""
