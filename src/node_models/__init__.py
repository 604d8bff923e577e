"""
Node Models Module

This module contains first order node models for macroscopic network loading:
- Fixed (per node) and variable (per run) node model inputs
- The general first order node model of Tampère et al. (2011)
- Single-node update helper for network loading loops

A node model computes, for each incoming link of a node, the fraction of its
offered flow that can pass the node given downstream receiving flows.
"""

__version__ = "0.1.0"

from .exceptions import (
    NodeModelError,
    DimensionError,
    DimensionMismatchError,
    MissingReceivingFlowsError,
    InvalidInputError,
    InvalidTopologyError,
    NoProgressError,
)

from .network import (
    LinkSegment,
    MacroscopicLinkSegment,
    Node,
)

from .inputs import (
    FixedTopologyInput,
    VariableRunInput,
)

from .tampere import (
    ConstraintType,
    NodeModel,
    NodeModelConfig,
    NodeModelResult,
    NoRestriction,
    NO_RESTRICTION,
    Restriction,
    SolverPhase,
    SolverState,
    TampereNodeModel,
    create_node_model,
)

from .loading import (
    compute_turn_sending_flows,
    perform_node_model_update,
)

__all__ = [
    # Exceptions
    'NodeModelError',
    'DimensionError',
    'DimensionMismatchError',
    'MissingReceivingFlowsError',
    'InvalidInputError',
    'InvalidTopologyError',
    'NoProgressError',
    # Network
    'LinkSegment',
    'MacroscopicLinkSegment',
    'Node',
    # Inputs
    'FixedTopologyInput',
    'VariableRunInput',
    # Node Models
    'ConstraintType',
    'NodeModel',
    'NodeModelConfig',
    'NodeModelResult',
    'NoRestriction',
    'NO_RESTRICTION',
    'Restriction',
    'SolverPhase',
    'SolverState',
    'TampereNodeModel',
    'create_node_model',
    # Loading
    'compute_turn_sending_flows',
    'perform_node_model_update',
]
