"""
Node Model Exceptions

All errors raised while constructing node model inputs or running a node
model derive from NodeModelError. Construction errors also derive from the
matching builtin so callers can catch ValueError/TypeError as usual.
"""


class NodeModelError(Exception):
    """Base class for node model errors"""


class DimensionError(NodeModelError, ValueError):
    """A required input array is absent, so a dimension cannot be determined"""


class DimensionMismatchError(DimensionError):
    """Input array shape does not match the node's incoming/outgoing counts"""


class MissingReceivingFlowsError(NodeModelError, ValueError):
    """Neither fixed nor overriding receiving flows are available"""


class InvalidInputError(NodeModelError, ValueError):
    """Input contains negative or non-numeric flows or capacities"""


class InvalidTopologyError(NodeModelError, TypeError):
    """A node's link segment is not a macroscopic link segment"""


class NoProgressError(NodeModelError, RuntimeError):
    """Iteration cap exceeded before all incoming links were resolved"""
