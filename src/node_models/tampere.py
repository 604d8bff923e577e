"""
First Order Node Models for Macroscopic Network Loading

This module implements the generic class of first order node models proposed
by Tampère et al. (2011), following the algorithm description of Bliemer et
al. (2014), Appendix A.

A node model decides, for a single node and a single update, which fraction
of the flow offered by each incoming link may pass the node. It is the place
where merge and diverge conflicts are resolved and where capacity and
receiving flow restrictions of downstream links propagate upstream.

Mathematical Background:
------------------------
Inputs per node:
- t_ab: turn sending flow from incoming link a to outgoing link b [pcu/hr]
- C_a:  capacity of incoming link a [pcu/hr]
- R_b:  receiving flow of outgoing link b [pcu/hr]

Capacity scaling factor (in-link priority proportional to capacity):
    λ_a = C_a / Σ_b t_ab

Restriction factor of an outgoing link, over unprocessed in-links U:
    β_b = R_b / Σ_{a∈U} λ_a t_ab

Algorithm:
1. b* = argmin_b β_b (lowest index on ties)
2. Demand constrained in-links of b*:  Y = {a ∈ U | λ_a t_ab* > 0, λ_a β_b* ≥ 1}
   If Y ≠ ∅: α_a = 1 for a ∈ Y, R_b -= t_ab for all b, remove Y from U
3. Otherwise capacity constrained:      Z = {a ∈ U | λ_a t_ab* > 0}
   α_a = λ_a β_b* for a ∈ Z, R_b -= α_a t_ab for all b, remove Z from U
4. Repeat until U = ∅. If no outgoing link restricts U, all of U is resolved:
   α_a = min(1, λ_a), capacity constrained when λ_a < 1, else demand constrained.

Result: flow acceptance factors α_a ∈ [0, 1] per incoming link.

References:
-----------
[1] Tampère, C.M.J., Corthout, R., Cattrysse, D., Immers, L.H. (2011).
    "A generic class of first order node models for dynamic macroscopic
    simulation of traffic flows". Transportation Research Part B 45(1), 289-309
[2] Bliemer, M.C.J., Raadsen, M.P.H., Smits, E.-S., Zhou, B., Bell, M.G.H. (2014).
    "Quasi-dynamic traffic assignment with residual point queues incorporating
    a first order node model". Transportation Research Part B 68, 363-384
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union
import logging
import math

from .exceptions import InvalidInputError, NoProgressError
from .inputs import FixedTopologyInput, VariableRunInput
from .precision import EPSILON_6, greater, greater_equal, positive

logger = logging.getLogger(__name__)


class ConstraintType(Enum):
    """Why an incoming link's flow acceptance factor has its value"""
    DEMAND = "demand"           # All offered flow accepted (α = 1)
    CAPACITY = "capacity"       # Offered flow reduced by a capacity restriction


class SolverPhase(Enum):
    """Node model run phases"""
    INITIALIZED = "initialized"
    ITERATING = "iterating"
    DONE = "done"


@dataclass(frozen=True)
class Restriction:
    """Most restricting outgoing link b* and its restriction factor β_b*"""
    factor: float
    out_index: int


@dataclass(frozen=True)
class NoRestriction:
    """No outgoing link restricts the remaining incoming links"""


NO_RESTRICTION = NoRestriction()

RestrictionResult = Union[Restriction, NoRestriction]


@dataclass
class NodeModelConfig:
    """Configuration shared by node model runs"""
    epsilon: float = EPSILON_6                                   # Flow comparison tolerance [pcu/hr]
    max_in_capacity: float = FixedTopologyInput.DEFAULT_MAX_IN_CAPACITY  # In-link capacity cap [pcu/hr]
    log_iterations: bool = False                                 # Debug log every iteration

    def __post_init__(self):
        assert self.epsilon >= 0, "Epsilon must be non-negative"
        assert self.max_in_capacity > 0, "Maximum in-link capacity must be positive"


@dataclass
class SolverState:
    """
    Mutable state of a single node model run

    Created by initialise() and discarded when the run ends. Rows of the
    scaled sending flows are zeroed once their in-link is processed so they
    no longer count towards any restriction.
    """
    remaining_receiving_flows: List[float]
    scaled_remaining_sending_flows: List[List[float]]
    processed: List[bool]
    acceptance_factors: List[float]
    constraint_types: List[Optional[ConstraintType]]
    processed_count: int = 0
    iterations: int = 0
    phase: SolverPhase = SolverPhase.INITIALIZED

    def is_processed(self, in_index: int) -> bool:
        return self.processed[in_index]

    def mark_processed(self, in_index: int, constraint_type: ConstraintType) -> None:
        self.processed[in_index] = True
        self.constraint_types[in_index] = constraint_type
        self.processed_count += 1


@dataclass
class NodeModelResult:
    """Result of a node model run"""
    acceptance_factors: List[float]             # α_a per incoming link
    constraint_types: List[ConstraintType]      # demand/capacity per incoming link
    iterations: int                             # outer iterations used
    inputs: VariableRunInput = field(repr=False)

    def accepted_turn_flows(self) -> List[List[float]]:
        """Accepted turn flows α_a × t_ab"""
        return [
            [alpha * flow for flow in row]
            for alpha, row in zip(self.acceptance_factors, self.inputs.turn_sending_flows)
        ]

    def entry_outflows(self) -> List[float]:
        """Flow leaving each incoming link through the node"""
        return [sum(row) for row in self.accepted_turn_flows()]

    def exit_inflows(self) -> List[float]:
        """Flow entering each outgoing link through the node"""
        inflows = [0.0] * self.inputs.outgoing_count
        for row in self.accepted_turn_flows():
            for b, flow in enumerate(row):
                inflows[b] += flow
        return inflows

    def is_capacity_constrained(self, in_index: int) -> bool:
        return self.constraint_types[in_index] == ConstraintType.CAPACITY

    @property
    def num_capacity_constrained(self) -> int:
        return sum(1 for c in self.constraint_types if c == ConstraintType.CAPACITY)


class NodeModel(ABC):
    """
    Abstract base class for node models

    A node model computes a flow acceptance factor for every incoming link
    of a node given the run's inputs.
    """

    def __init__(self, config: Optional[NodeModelConfig] = None):
        self.config = config or NodeModelConfig()

    @abstractmethod
    def run(self, inputs: VariableRunInput) -> NodeModelResult:
        """Compute flow acceptance factors for all incoming links"""
        pass


class TampereNodeModel(NodeModel):
    """
    General first order node model (Tampère et al. 2011, Bliemer et al. 2014)

    The model instance holds no run state, so it can be reused for many runs
    and nodes. Inputs are never modified.

    Usage:
        fixed = FixedTopologyInput([1000.0, 500.0], [800.0, 300.0])
        inputs = VariableRunInput(fixed, [[600, 400], [300, 200]])
        result = TampereNodeModel().run(inputs)
        result.acceptance_factors   # [0.5, 0.5]
    """

    def initialise(self, inputs: VariableRunInput) -> SolverState:
        """Step 1: fresh run state with scaled sending flows λ_a × t_ab"""
        scaled = []
        for scaling_factor, row in zip(inputs.capacity_scaling_factors, inputs.turn_sending_flows):
            # In-links without sending flow are never restricting
            if math.isinf(scaling_factor):
                scaled.append([0.0] * len(row))
            else:
                scaled.append([scaling_factor * flow for flow in row])

        num_in = inputs.incoming_count
        return SolverState(
            remaining_receiving_flows=list(inputs.receiving_flows),
            scaled_remaining_sending_flows=scaled,
            processed=[False] * num_in,
            acceptance_factors=[1.0] * num_in,
            constraint_types=[None] * num_in,
        )

    def find_most_restricting_out_link(self, state: SolverState,
                                       inputs: VariableRunInput) -> RestrictionResult:
        """
        Steps 2 and 3: outgoing link with the smallest restriction factor

        Outgoing links are scanned in index order and only a strictly smaller
        factor replaces the current one, so ties go to the lowest index.
        """
        eps = self.config.epsilon
        found: RestrictionResult = NO_RESTRICTION
        found_factor = math.inf

        for b in range(inputs.outgoing_count):
            # Σ λ_a t_ab over unprocessed a
            scaled_sum = 0.0
            for a in range(inputs.incoming_count):
                if not state.is_processed(a):
                    scaled_sum += state.scaled_remaining_sending_flows[a][b]

            # Only non-zero flows can lead to a restriction
            if not positive(scaled_sum, eps):
                continue

            remaining = max(0.0, state.remaining_receiving_flows[b])
            factor = remaining / scaled_sum
            if factor < found_factor:
                found_factor = factor
                found = Restriction(factor=factor, out_index=b)

        return found

    def contributing_in_links(self, state: SolverState, inputs: VariableRunInput,
                              out_index: int) -> List[int]:
        """
        Unprocessed in-links sending flow towards an outgoing link

        In-links whose scaled flow exceeds epsilon are preferred. When the
        restricting column sum is made up only of flows below epsilon, every
        in-link with non-zero scaled flow contributes instead.
        """
        eps = self.config.epsilon
        unprocessed = [a for a in range(inputs.incoming_count) if not state.is_processed(a)]

        contributors = [a for a in unprocessed
                        if greater(state.scaled_remaining_sending_flows[a][out_index], 0.0, eps)]
        if not contributors:
            contributors = [a for a in unprocessed
                            if state.scaled_remaining_sending_flows[a][out_index] > 0.0]
        return contributors

    def update_demand_constrained_in_links(self, state: SolverState,
                                           inputs: VariableRunInput,
                                           restriction: RestrictionResult) -> bool:
        """
        Step 4a: accept all flow of demand constrained in-links

        Without a restricting out-link all remaining in-links are resolved
        here. Their own capacity still applies: an in-link with λ_a < 1
        passes λ_a of its flow and is capacity constrained.

        Returns:
            True if at least one in-link was resolved
        """
        eps = self.config.epsilon

        if isinstance(restriction, NoRestriction):
            remaining = [a for a in range(inputs.incoming_count) if not state.is_processed(a)]
            for a in remaining:
                scaling_factor = inputs.capacity_scaling_factors[a]
                if scaling_factor < 1.0:
                    state.acceptance_factors[a] = scaling_factor
                    state.mark_processed(a, ConstraintType.CAPACITY)
                    self._remove_accepted_flows(state, inputs, a, scaling_factor)
                else:
                    state.mark_processed(a, ConstraintType.DEMAND)
                    self._remove_accepted_flows(state, inputs, a, 1.0)
            return len(remaining) > 0

        demand_constrained = []
        for a in self.contributing_in_links(state, inputs, restriction.out_index):
            # λ_a β_b* >= 1, ties are demand constrained
            if greater_equal(inputs.capacity_scaling_factors[a] * restriction.factor, 1.0, eps):
                demand_constrained.append(a)

        for a in demand_constrained:
            state.mark_processed(a, ConstraintType.DEMAND)
            self._remove_accepted_flows(state, inputs, a, 1.0)

        return len(demand_constrained) > 0

    def update_capacity_constrained_in_links(self, state: SolverState,
                                             inputs: VariableRunInput,
                                             restriction: Restriction) -> None:
        """Step 4b: reduce the flow of all in-links feeding the restricting out-link"""
        for a in self.contributing_in_links(state, inputs, restriction.out_index):
            # α_a = λ_a β_b*
            acceptance = inputs.capacity_scaling_factors[a] * restriction.factor
            state.acceptance_factors[a] = acceptance
            state.mark_processed(a, ConstraintType.CAPACITY)
            self._remove_accepted_flows(state, inputs, a, acceptance)

    def _remove_accepted_flows(self, state: SolverState, inputs: VariableRunInput,
                               in_index: int, acceptance: float) -> None:
        """
        Steps 5 and 6: R_b -= α_a t_ab for every b, then drop row a

        Uses the unscaled turn sending flows of the inputs.
        """
        row = inputs.turn_sending_flows[in_index]
        for b, flow in enumerate(row):
            state.remaining_receiving_flows[b] -= flow * acceptance
        state.scaled_remaining_sending_flows[in_index] = [0.0] * len(row)

    def run(self, inputs: VariableRunInput) -> NodeModelResult:
        """
        Run the node model

        Args:
            inputs: Inputs for this run, not modified

        Returns:
            NodeModelResult with a flow acceptance factor per incoming link

        Raises:
            InvalidInputError: if the inputs were built with a different
                epsilon than the model's configuration
            NoProgressError: if the incoming links could not all be resolved
                within |A| iterations
        """
        if inputs.epsilon != self.config.epsilon:
            raise InvalidInputError(
                f"inputs use epsilon {inputs.epsilon}, node model is configured "
                f"with epsilon {self.config.epsilon}")

        state = self.initialise(inputs)
        num_in = inputs.incoming_count
        max_iterations = num_in
        state.phase = SolverPhase.ITERATING

        while state.processed_count < num_in:
            if state.iterations >= max_iterations:
                logger.error(
                    "Node model made no progress: %d of %d incoming links resolved "
                    "after %d iterations", state.processed_count, num_in, state.iterations)
                raise NoProgressError(
                    f"{num_in - state.processed_count} incoming links unresolved "
                    f"after {state.iterations} iterations")
            state.iterations += 1

            restriction = self.find_most_restricting_out_link(state, inputs)
            if self.config.log_iterations:
                logger.debug("iteration %d: %s", state.iterations, restriction)

            if self.update_demand_constrained_in_links(state, inputs, restriction):
                continue
            if isinstance(restriction, Restriction):
                self.update_capacity_constrained_in_links(state, inputs, restriction)

        state.phase = SolverPhase.DONE
        if self.config.log_iterations:
            logger.debug("node model done after %d iterations, alpha=%s",
                         state.iterations, state.acceptance_factors)

        return NodeModelResult(
            acceptance_factors=state.acceptance_factors,
            constraint_types=state.constraint_types,
            iterations=state.iterations,
            inputs=inputs,
        )


# =============================================================================
# Factory Function
# =============================================================================

def create_node_model(model_type: str = 'tampere',
                      config: Optional[NodeModelConfig] = None) -> NodeModel:
    """
    Factory function to create node models

    Args:
        model_type: One of 'tampere'
        config: Node model configuration

    Returns:
        NodeModel instance
    """
    models = {
        'tampere': TampereNodeModel,
    }

    if model_type not in models:
        raise ValueError(f"Unknown node model type: {model_type}. "
                        f"Available: {list(models.keys())}")

    return models[model_type](config)
