"""
Node Model Update for a Single Node

Glue between link-level loading data and a node model run, as performed by a
network loading loop for every potentially blocking node:

    t_ab = s_a × φ_ab          (sending flow × splitting rate)
    C_a  = min(C_max, C_a)     (connectoids may have unbounded capacity)
    R_b  = C_b unless overridden (e.g. by a storage constrained receiving flow)

The caller decides what to do with failures; errors are not caught here.
"""

from typing import List, Optional, Sequence

from .exceptions import DimensionMismatchError
from .inputs import FixedTopologyInput, VariableRunInput
from .network import Node
from .tampere import NodeModel, NodeModelConfig, NodeModelResult, create_node_model


def compute_turn_sending_flows(sending_flows: Sequence[float],
                               splitting_rates: Sequence[Sequence[float]]) -> List[List[float]]:
    """
    Turn sending flows from in-link sending flows and splitting rates

    Args:
        sending_flows: s_a per incoming link [pcu/hr]
        splitting_rates: φ_ab per incoming link, each row summing to 1 (or 0)

    Returns:
        t_ab = s_a × φ_ab
    """
    if len(sending_flows) != len(splitting_rates):
        raise DimensionMismatchError(
            f"{len(sending_flows)} sending flows given for "
            f"{len(splitting_rates)} rows of splitting rates")

    if splitting_rates:
        num_out = len(splitting_rates[0])
        for a, rates in enumerate(splitting_rates):
            if len(rates) != num_out:
                raise DimensionMismatchError(
                    f"splitting rates row {a} has {len(rates)} entries, expected {num_out}")

    return [[s_a * phi for phi in rates] for s_a, rates in zip(sending_flows, splitting_rates)]


def perform_node_model_update(node: Node,
                              sending_flows: Sequence[float],
                              splitting_rates: Sequence[Sequence[float]],
                              receiving_flows: Optional[Sequence[float]] = None,
                              config: Optional[NodeModelConfig] = None,
                              node_model: Optional[NodeModel] = None) -> NodeModelResult:
    """
    Run the node model on one node with the current sending flows

    Args:
        node: Node whose entry/exit link segments define A and B
        sending_flows: s_a per entry link segment, in the node's entry order
        splitting_rates: φ_ab per entry link segment, in the node's exit order
        receiving_flows: R_b overriding the exit capacities (optional)
        config: Node model configuration (default: NodeModelConfig())
        node_model: Node model to use (default: Tampère)

    Returns:
        NodeModelResult for this node
    """
    config = config or NodeModelConfig()
    node_model = node_model or create_node_model('tampere', config)

    fixed_input = FixedTopologyInput.from_node(
        node,
        initialise_receiving_flows_at_capacity=receiving_flows is None,
        max_in_capacity=config.max_in_capacity,
    )
    turn_sending_flows = compute_turn_sending_flows(sending_flows, splitting_rates)
    inputs = VariableRunInput(fixed_input, turn_sending_flows, receiving_flows,
                              epsilon=config.epsilon)

    return node_model.run(inputs)
