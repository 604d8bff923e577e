"""
Integration Test Suite: Node Model Update

This test bench validates running the node model on network nodes the way a
network loading loop does:
- Turn sending flows from sending flows and splitting rates
- Merge, diverge and crossing nodes built from link segments
- Receiving flow overrides (storage constrained receiving flows)
- Capacity capping of connectoid-like entries
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from node_models.exceptions import DimensionMismatchError, InvalidTopologyError
from node_models.loading import compute_turn_sending_flows, perform_node_model_update
from node_models.network import LinkSegment, MacroscopicLinkSegment, Node
from node_models.tampere import ConstraintType, NodeModelConfig


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def merge_node() -> Node:
    """One-lane ramp and two-lane mainline merging into a one-lane exit"""
    return Node(
        node_id="merge",
        entry_segments=[
            MacroscopicLinkSegment("ramp", num_lanes=1),
            MacroscopicLinkSegment("mainline", num_lanes=2),
        ],
        exit_segments=[
            MacroscopicLinkSegment("downstream", capacity_pcu_h=1800.0),
        ],
    )


@pytest.fixture
def crossing_node() -> Node:
    """Two entries, two exits, all one lane"""
    return Node(
        node_id="crossing",
        entry_segments=[MacroscopicLinkSegment("north_in"), MacroscopicLinkSegment("west_in")],
        exit_segments=[MacroscopicLinkSegment("south_out"), MacroscopicLinkSegment("east_out")],
    )


# =============================================================================
# Test Class: Turn Sending Flows
# =============================================================================

class TestTurnSendingFlows:
    """Test t_ab = s_a × φ_ab"""

    def test_turn_sending_flows(self):
        flows = compute_turn_sending_flows([1000.0, 400.0], [[0.25, 0.75], [1.0, 0.0]])

        assert flows == [[250.0, 750.0], [400.0, 0.0]]

    def test_row_count_mismatch_rejected(self):
        with pytest.raises(DimensionMismatchError):
            compute_turn_sending_flows([1000.0], [[0.5, 0.5], [1.0, 0.0]])

    def test_ragged_splitting_rates_rejected(self):
        with pytest.raises(DimensionMismatchError):
            compute_turn_sending_flows([1000.0, 400.0], [[0.5, 0.5], [1.0]])

    def test_no_entries(self):
        assert compute_turn_sending_flows([], []) == []


# =============================================================================
# Test Class: Node Model Update
# =============================================================================

@pytest.mark.integration
class TestNodeModelUpdate:
    """Test single-node updates from network data"""

    def test_merge_shares_capacity_by_in_link_capacity(self, merge_node, tolerance):
        """
        C = [1800, 3600], both sending 1800 into R = 1800
        λ = [1, 2], β = 1800/5400 = 1/3, α = [1/3, 2/3]
        Outflows are proportional to in-link capacity, not to demand
        """
        result = perform_node_model_update(merge_node, [1800.0, 1800.0], [[1.0], [1.0]])

        assert result.acceptance_factors[0] == pytest.approx(1 / 3, rel=tolerance['rel'])
        assert result.acceptance_factors[1] == pytest.approx(2 / 3, rel=tolerance['rel'])
        outflows = result.entry_outflows()
        assert outflows[0] == pytest.approx(600.0, abs=tolerance['abs'])
        assert outflows[1] == pytest.approx(1200.0, abs=tolerance['abs'])

    def test_storage_constrained_receiving_flow(self, merge_node, tolerance):
        result = perform_node_model_update(
            merge_node, [1800.0, 1800.0], [[1.0], [1.0]], receiving_flows=[900.0])

        assert result.acceptance_factors[0] == pytest.approx(1 / 6, rel=tolerance['rel'])
        assert result.acceptance_factors[1] == pytest.approx(1 / 3, rel=tolerance['rel'])
        assert result.exit_inflows()[0] == pytest.approx(900.0, abs=tolerance['abs'])

    def test_undersaturated_merge(self, merge_node):
        result = perform_node_model_update(merge_node, [300.0, 900.0], [[1.0], [1.0]])

        assert result.acceptance_factors == [1.0, 1.0]
        assert result.constraint_types == [ConstraintType.DEMAND, ConstraintType.DEMAND]

    def test_crossing_with_one_congested_exit(self, crossing_node, tolerance):
        """
        t = [[900, 900], [0, 1800]], C = R = 1800
        λ = [1, 1], β = [1800/900, 1800/2700] -> east exit binds at 2/3
        Both entries capacity constrained at α = 2/3, which also holds back
        north's flow towards the uncongested south exit
        """
        result = perform_node_model_update(
            crossing_node, [1800.0, 1800.0], [[0.5, 0.5], [0.0, 1.0]])

        for alpha in result.acceptance_factors:
            assert alpha == pytest.approx(2 / 3, rel=tolerance['rel'])
        inflows = result.exit_inflows()
        assert inflows[0] == pytest.approx(600.0, abs=tolerance['abs'])
        assert inflows[1] == pytest.approx(1800.0, abs=tolerance['abs'])

    def test_crossing_with_spare_exit_capacity(self, crossing_node):
        """West entry is demand constrained first, north then fits the rest"""
        result = perform_node_model_update(
            crossing_node, [1800.0, 900.0], [[0.5, 0.5], [0.0, 1.0]])

        assert result.acceptance_factors == [1.0, 1.0]
        assert result.iterations == 2

    def test_connectoid_capacity_capped(self):
        node = Node(
            node_id="zone",
            entry_segments=[MacroscopicLinkSegment("connectoid", capacity_pcu_h=1e12)],
            exit_segments=[MacroscopicLinkSegment("out", capacity_pcu_h=2000.0)],
        )

        result = perform_node_model_update(node, [5000.0], [[1.0]])

        assert result.inputs.fixed_input.incoming_capacities == [10000.0]
        assert result.acceptance_factors[0] == pytest.approx(0.4)

    def test_configured_capacity_cap(self):
        node = Node(
            node_id="zone",
            entry_segments=[MacroscopicLinkSegment("connectoid", capacity_pcu_h=1e12)],
            exit_segments=[MacroscopicLinkSegment("out", capacity_pcu_h=2000.0)],
        )

        result = perform_node_model_update(
            node, [5000.0], [[1.0]], config=NodeModelConfig(max_in_capacity=5000.0))

        assert result.inputs.fixed_input.incoming_capacities == [5000.0]

    def test_invalid_topology_propagates(self):
        node = Node(
            node_id="bad",
            entry_segments=[MacroscopicLinkSegment("in")],
            exit_segments=[LinkSegment("plain")],
        )

        with pytest.raises(InvalidTopologyError):
            perform_node_model_update(node, [100.0], [[1.0]])

    def test_sending_flows_must_match_entries(self, merge_node):
        with pytest.raises(DimensionMismatchError):
            perform_node_model_update(merge_node, [100.0], [[1.0]])

    def test_configured_epsilon_reaches_inputs(self, merge_node):
        result = perform_node_model_update(
            merge_node, [300.0, 900.0], [[1.0], [1.0]], config=NodeModelConfig(epsilon=1e-3))

        assert result.inputs.epsilon == 1e-3
        assert result.acceptance_factors == [1.0, 1.0]
