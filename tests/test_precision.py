"""
Test Suite: Numeric Comparison Utilities

Validates the epsilon-aware comparisons used by the node model to keep
floating point noise from changing classification decisions.
"""

import pytest
import math
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from node_models.precision import (
    EPSILON_6,
    greater,
    greater_equal,
    smaller,
    equal,
    positive,
)


class TestPrecision:
    """Test epsilon-aware comparisons"""

    def test_positive_ignores_noise(self):
        assert positive(1.0)
        assert not positive(0.0)
        assert not positive(EPSILON_6 / 2)
        assert not positive(-1.0)

    def test_greater_requires_margin(self):
        assert greater(1.0, 0.0)
        assert not greater(1.0 + 1e-9, 1.0)
        assert not greater(1.0, 1.0)

    def test_greater_equal_accepts_ties(self):
        """Exact and near ties count as greater-or-equal"""
        assert greater_equal(1.0, 1.0)
        assert greater_equal(1.0 - 1e-9, 1.0)
        assert not greater_equal(0.99, 1.0)
        assert greater_equal(math.inf, 1.0)

    def test_smaller(self):
        assert smaller(0.5, 1.0)
        assert not smaller(1.0 - 1e-9, 1.0)

    def test_equal(self):
        assert equal(0.1 + 0.2, 0.3)
        assert equal(math.inf, math.inf)
        assert not equal(1.0, 1.1)

    def test_custom_epsilon(self):
        assert not greater(1.05, 1.0, epsilon=0.1)
        assert greater(1.05, 1.0, epsilon=0.01)
