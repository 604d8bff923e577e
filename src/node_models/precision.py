"""
Numeric Comparison Utilities

Flows in a node model are sums and products of many floating point values,
so plain comparisons misclassify values that differ only by rounding noise.
All comparisons used by the node model go through these helpers.

Conventions:
------------
- greater(a, b):        a - b >  eps
- greater_equal(a, b):  a - b >= -eps   (ties within eps count as equal)
- smaller(a, b):        b - a >  eps
- equal(a, b):          |a - b| <= eps
- positive(a):          a > eps
"""

EPSILON_6 = 1e-6


def greater(a: float, b: float, epsilon: float = EPSILON_6) -> bool:
    """Check if a is greater than b by more than epsilon"""
    return a - b > epsilon


def greater_equal(a: float, b: float, epsilon: float = EPSILON_6) -> bool:
    """Check if a is greater than, or within epsilon of, b"""
    return a - b >= -epsilon


def smaller(a: float, b: float, epsilon: float = EPSILON_6) -> bool:
    """Check if a is smaller than b by more than epsilon"""
    return b - a > epsilon


def equal(a: float, b: float, epsilon: float = EPSILON_6) -> bool:
    """Check if a and b are within epsilon of each other"""
    if a == b:
        return True
    return abs(a - b) <= epsilon


def positive(value: float, epsilon: float = EPSILON_6) -> bool:
    """Check if value exceeds zero by more than epsilon"""
    return value > epsilon
