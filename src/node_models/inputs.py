"""
Node Model Inputs

A node model run needs two kinds of input:

1. Fixed inputs (FixedTopologyInput): everything conditioned on the network
   infrastructure around a node. Created once per node and reused for every
   node model update during a simulation.
   - incoming link segments mapped in order of appearance to a = 0..|A|-1
   - outgoing link segments mapped in order of appearance to b = 0..|B|-1
   - incoming link capacities C_a
   - outgoing receiving flows R_b (optional, R_b = C_b by default)

2. Variable inputs (VariableRunInput): everything that changes between
   updates. Created for every node model run.
   - turn sending flows t_ab
   - receiving flows R_b, possibly overriding the fixed ones (e.g. when
     storage constraints/spillback reduce the receiving flow below capacity)
   - capacity scaling factors λ_a = C_a / Σ_b t_ab

Receiving flows must be available from one of the two sources.
"""

import math
from typing import List, Optional, Sequence

from .exceptions import (
    DimensionError,
    DimensionMismatchError,
    InvalidInputError,
    InvalidTopologyError,
    MissingReceivingFlowsError,
)
from .network import LinkSegment, MacroscopicLinkSegment, Node
from .precision import EPSILON_6, positive


def _validated_copy(values: Sequence[float], name: str) -> List[float]:
    """Copy a flow/capacity array, rejecting negative and non-finite entries"""
    copied = [float(v) for v in values]
    for index, value in enumerate(copied):
        if not math.isfinite(value) or value < 0:
            raise InvalidInputError(
                f"{name}[{index}] must be a finite non-negative number, got {value}")
    return copied


def _map_link_segments(segments: Sequence[LinkSegment]) -> List[MacroscopicLinkSegment]:
    """Map link segments to local indices in order of appearance"""
    mapped = []
    for segment in segments:
        if not isinstance(segment, MacroscopicLinkSegment):
            raise InvalidTopologyError(
                f"Link segment {getattr(segment, 'segment_id', segment)!r} is not a "
                f"MacroscopicLinkSegment, cannot map it in node model")
        mapped.append(segment)
    return mapped


class FixedTopologyInput:
    """
    Node model inputs that do not change between runs at the same node

    Either built directly from capacity/receiving flow arrays, or from a
    network node via from_node(). When receiving flows are not fixed, the
    number of outgoing links must still be known, so num_outgoing has to be
    given instead.
    """

    # In-links without a physically meaningful capacity (e.g. connectoids)
    # are capped to this value
    DEFAULT_MAX_IN_CAPACITY = 10_000.0   # pcu/hr

    def __init__(self,
                 incoming_capacities: Optional[Sequence[float]],
                 outgoing_receiving_flows: Optional[Sequence[float]] = None,
                 num_outgoing: Optional[int] = None,
                 max_in_capacity: float = DEFAULT_MAX_IN_CAPACITY):
        if incoming_capacities is None:
            raise DimensionError("incoming link capacities are required")

        if outgoing_receiving_flows is None and num_outgoing is None:
            raise DimensionError(
                "either outgoing receiving flows or the number of outgoing links is required")

        if outgoing_receiving_flows is not None and num_outgoing is not None \
                and len(outgoing_receiving_flows) != num_outgoing:
            raise DimensionMismatchError(
                f"{len(outgoing_receiving_flows)} receiving flows given for "
                f"{num_outgoing} outgoing links")

        self.max_in_capacity = max_in_capacity
        self.incoming_capacities = _validated_copy(incoming_capacities, "incoming_capacities")
        self.outgoing_receiving_flows: Optional[List[float]] = None
        if outgoing_receiving_flows is not None:
            self.outgoing_receiving_flows = _validated_copy(
                outgoing_receiving_flows, "outgoing_receiving_flows")
            num_outgoing = len(self.outgoing_receiving_flows)
        self._num_outgoing = num_outgoing

        # Only populated when built from a network node
        self.incoming_link_segments: List[MacroscopicLinkSegment] = []
        self.outgoing_link_segments: List[MacroscopicLinkSegment] = []

    @classmethod
    def from_node(cls, node: Node,
                  initialise_receiving_flows_at_capacity: bool = True,
                  max_in_capacity: float = DEFAULT_MAX_IN_CAPACITY) -> 'FixedTopologyInput':
        """
        Build fixed inputs from a node's entry and exit link segments

        Args:
            node: Node to extract the static inputs from
            initialise_receiving_flows_at_capacity: Set R_b = C_b (True), or leave
                receiving flows to be provided with every run (False)
            max_in_capacity: Cap on incoming capacities [pcu/hr]

        Raises:
            InvalidTopologyError: if a segment is not a MacroscopicLinkSegment
        """
        incoming = _map_link_segments(node.entry_segments)
        outgoing = _map_link_segments(node.exit_segments)

        capacities = [min(max_in_capacity, s.get_capacity_or_default_pcu_h()) for s in incoming]
        receiving = None
        if initialise_receiving_flows_at_capacity:
            receiving = [s.get_capacity_or_default_pcu_h() for s in outgoing]

        fixed_input = cls(capacities, receiving, num_outgoing=len(outgoing),
                          max_in_capacity=max_in_capacity)
        fixed_input.incoming_link_segments = incoming
        fixed_input.outgoing_link_segments = outgoing
        return fixed_input

    def cap_in_capacities_to_maximum(self, maximum: Optional[float] = None) -> None:
        """Cap every incoming capacity to the given (or configured) maximum"""
        if maximum is not None:
            self.max_in_capacity = maximum
        self.incoming_capacities = [min(c, self.max_in_capacity) for c in self.incoming_capacities]

    @property
    def incoming_count(self) -> int:
        return len(self.incoming_capacities)

    @property
    def outgoing_count(self) -> int:
        return self._num_outgoing

    @property
    def has_receiving_flows(self) -> bool:
        return self.outgoing_receiving_flows is not None

    def incoming_index(self, segment: LinkSegment) -> int:
        """Local index a of an incoming link segment"""
        return self.incoming_link_segments.index(segment)

    def outgoing_index(self, segment: LinkSegment) -> int:
        """Local index b of an outgoing link segment"""
        return self.outgoing_link_segments.index(segment)


class VariableRunInput:
    """
    Inputs for a single node model run

    Combines fixed inputs with the turn sending flows of this run and
    (optionally) overriding receiving flows. All arrays are copied, the
    caller's data is never referenced.
    """

    def __init__(self, fixed_input: FixedTopologyInput,
                 turn_sending_flows: Sequence[Sequence[float]],
                 receiving_flows: Optional[Sequence[float]] = None,
                 epsilon: float = EPSILON_6):
        self.fixed_input = fixed_input
        self.epsilon = epsilon
        self._verify_dimensions(turn_sending_flows, receiving_flows)

        self.turn_sending_flows = [
            _validated_copy(row, f"turn_sending_flows[{a}]")
            for a, row in enumerate(turn_sending_flows)
        ]

        if receiving_flows is not None:
            self.receiving_flows = _validated_copy(receiving_flows, "receiving_flows")
        elif fixed_input.has_receiving_flows:
            self.receiving_flows = list(fixed_input.outgoing_receiving_flows)
        else:
            raise MissingReceivingFlowsError(
                "no receiving flows provided and none fixed for this node")

        # λ_a = C_a / Σ_b t_ab
        self.capacity_scaling_factors = self._compute_capacity_scaling_factors()

    def _verify_dimensions(self, turn_sending_flows: Sequence[Sequence[float]],
                           receiving_flows: Optional[Sequence[float]]) -> None:
        """Turn sending flows must be |A| x |B|, receiving flows |B|"""
        if turn_sending_flows is None:
            raise DimensionError("turn sending flows are required")

        num_in = self.fixed_input.incoming_count
        num_out = self.fixed_input.outgoing_count
        if len(turn_sending_flows) != num_in:
            raise DimensionMismatchError(
                f"turn sending flows have {len(turn_sending_flows)} rows, "
                f"node has {num_in} incoming links")
        for a, row in enumerate(turn_sending_flows):
            if len(row) != num_out:
                raise DimensionMismatchError(
                    f"turn sending flows row {a} has {len(row)} columns, "
                    f"node has {num_out} outgoing links")

        if receiving_flows is not None and len(receiving_flows) != num_out:
            raise DimensionMismatchError(
                f"{len(receiving_flows)} receiving flows given, "
                f"node has {num_out} outgoing links")

    def _compute_capacity_scaling_factors(self) -> List[float]:
        """
        Scaling factor per incoming link

        An in-link with negligible total sending flow can never be the binding
        constraint, so its scaling factor is infinite.
        """
        factors = []
        for capacity, row in zip(self.fixed_input.incoming_capacities, self.turn_sending_flows):
            row_sum = sum(row)
            if positive(row_sum, self.epsilon):
                factors.append(capacity / row_sum)
            else:
                factors.append(math.inf)
        return factors

    @property
    def incoming_count(self) -> int:
        return self.fixed_input.incoming_count

    @property
    def outgoing_count(self) -> int:
        return self.fixed_input.outgoing_count

    def incoming_sending_flow(self, in_index: int) -> float:
        """Total sending flow Σ_b t_ab of an incoming link"""
        return sum(self.turn_sending_flows[in_index])
