"""
conftest.py - Shared pytest fixtures for stableledger tests

Provides common fixtures used across unit, conformance and functional tests:
- Collateral tokens and a price oracle for them
- Default risk parameters (8.0% rate, 150.0% minimum ratio, 12.0% penalty)
- An engine with all three tokens registered

Builders live in tests/helpers.py so test modules can import them directly.
"""

import pytest

from stableledger import RiskParameters
from tests.helpers import make_engine, make_oracle, make_tokens


@pytest.fixture
def tokens():
    return make_tokens()


@pytest.fixture
def oracle():
    return make_oracle()


@pytest.fixture
def params():
    return RiskParameters(80, 1500, 120)


@pytest.fixture
def engine(params, oracle):
    return make_engine(params, oracle)
