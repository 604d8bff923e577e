"""
Minimal Network Types for Node Model Inputs

Node models only need the ordered entry and exit link segments of a node and
their capacities. These types carry exactly that; the full network model
(topology, ids, geometry) lives with the caller.

A link segment's capacity is its explicit capacity [pcu/hr] if set, otherwise
a per-lane default times the number of lanes.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(eq=False)
class LinkSegment:
    """Directed edge segment entering or leaving a node"""
    segment_id: str
    num_lanes: int = 1


@dataclass(eq=False)
class MacroscopicLinkSegment(LinkSegment):
    """
    Link segment with macroscopic flow properties

    Only macroscopic link segments can take part in a node model, since the
    node model works on flows and capacities rather than individual vehicles.
    """
    capacity_pcu_h: Optional[float] = None   # explicit capacity [pcu/hr]

    # Default capacity per lane when none is set explicitly
    DEFAULT_CAPACITY_PCU_H_LANE = 1800.0     # pcu/hr/lane

    def get_capacity_or_default_pcu_h(self) -> float:
        """Explicit capacity if available, otherwise lanes × default lane capacity"""
        if self.capacity_pcu_h is not None:
            return self.capacity_pcu_h
        return self.num_lanes * self.DEFAULT_CAPACITY_PCU_H_LANE


@dataclass(eq=False)
class Node:
    """Network node with its entry and exit link segments in order of appearance"""
    node_id: str
    entry_segments: List[LinkSegment] = field(default_factory=list)
    exit_segments: List[LinkSegment] = field(default_factory=list)
