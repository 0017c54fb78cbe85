from __future__ import annotations

"""Screen-level navigation graph built up during one exploration session.

Nodes are screen fingerprints; edges are keyed by ``(from_fingerprint,
action)`` so that repeating the same action on the same screen counts as one
transition traversed several times.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import networkx as nx

from .elements import ScreenCategory

logger = logging.getLogger(__name__)


@dataclass
class ScreenNode:
    fingerprint: str
    screen_category: Optional[ScreenCategory]
    visit_count: int
    first_visit_time: datetime
    average_interactive_element_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fingerprint": self.fingerprint,
            "screen_category": self.screen_category.value if self.screen_category else None,
            "visit_count": self.visit_count,
            "first_visit_time": self.first_visit_time.isoformat(),
            "average_interactive_element_count": self.average_interactive_element_count,
        }


@dataclass
class ScreenEdge:
    from_fingerprint: str
    to_fingerprint: str
    action: str
    traversal_count: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_fingerprint,
            "to": self.to_fingerprint,
            "action": self.action,
            "traversal_count": self.traversal_count,
        }


class NavigationGraph:
    """Directed multigraph of screens connected by the actions between them."""

    def __init__(self) -> None:
        self._g: nx.MultiDiGraph = nx.MultiDiGraph()
        self._nodes: Dict[str, ScreenNode] = {}
        self._edges: Dict[Tuple[str, str], ScreenEdge] = {}
        self.start_node: Optional[str] = None

    # --- nodes ------------------------------------------------------------
    def add_node(
        self,
        fingerprint: str,
        screen_category: Optional[ScreenCategory] = None,
        interactive_count: int = 0,
        timestamp: Optional[datetime] = None,
    ) -> bool:
        """Register a visit; return True when the screen was not seen before."""
        node = self._nodes.get(fingerprint)
        if node is None:
            self._nodes[fingerprint] = ScreenNode(
                fingerprint=fingerprint,
                screen_category=screen_category,
                visit_count=1,
                first_visit_time=timestamp or datetime.now(timezone.utc),
                average_interactive_element_count=interactive_count,
            )
            self._g.add_node(fingerprint)
            if self.start_node is None:
                self.start_node = fingerprint
            return True

        node.visit_count += 1
        n = node.visit_count
        node.average_interactive_element_count = round(
            (node.average_interactive_element_count * (n - 1) + interactive_count) / n
        )
        return False

    def is_new_screen(self, fingerprint: str) -> bool:
        return fingerprint not in self._nodes

    def has_node(self, fingerprint: str) -> bool:
        return fingerprint in self._nodes

    def node(self, fingerprint: str) -> Optional[ScreenNode]:
        return self._nodes.get(fingerprint)

    @property
    def nodes(self) -> List[ScreenNode]:
        return list(self._nodes.values())

    # --- edges ------------------------------------------------------------
    def record_transition(self, from_fingerprint: str, action: str, to_fingerprint: str) -> ScreenEdge:
        for fp in (from_fingerprint, to_fingerprint):
            if fp not in self._nodes:
                self.add_node(fp)

        key = (from_fingerprint, action)
        edge = self._edges.get(key)
        if edge is None:
            edge = ScreenEdge(from_fingerprint, to_fingerprint, action)
            self._edges[key] = edge
            self._g.add_edge(from_fingerprint, to_fingerprint, key=action)
            return edge

        edge.traversal_count += 1
        if edge.to_fingerprint != to_fingerprint:
            logger.warning(
                "Action %r from %s led to %s, previously to %s; keeping latest destination",
                action, from_fingerprint[:12], to_fingerprint[:12], edge.to_fingerprint[:12],
            )
            self._g.remove_edge(from_fingerprint, edge.to_fingerprint, key=action)
            self._g.add_edge(from_fingerprint, to_fingerprint, key=action)
            edge.to_fingerprint = to_fingerprint
        return edge

    def edge(self, from_fingerprint: str, action: str) -> Optional[ScreenEdge]:
        return self._edges.get((from_fingerprint, action))

    @property
    def edges(self) -> List[ScreenEdge]:
        return list(self._edges.values())

    def outgoing(self, fingerprint: str) -> List[ScreenEdge]:
        return [e for e in self._edges.values() if e.from_fingerprint == fingerprint]

    # --- stats ------------------------------------------------------------
    @property
    def total_screens(self) -> int:
        return len(self._nodes)

    @property
    def total_transitions(self) -> int:
        return len(self._edges)

    # --- queries ----------------------------------------------------------
    def shortest_path(self, from_fingerprint: str, to_fingerprint: str) -> List[ScreenEdge]:
        """Edges along the shortest known route; ``[]`` when unreachable."""
        try:
            path_nodes = nx.shortest_path(self._g, from_fingerprint, to_fingerprint)
        except (nx.NetworkXNoPath, nx.NodeNotFound):
            return []
        path: List[ScreenEdge] = []
        for src, dst in zip(path_nodes, path_nodes[1:]):
            # several actions may connect the same pair; take the first deterministically
            action = next(iter(self._g.get_edge_data(src, dst)))
            path.append(self._edges[(src, action)])
        return path

    # convenience ----------------------------------------------------------
    def to_networkx(self) -> nx.MultiDiGraph:
        """Copy with GraphML-safe attributes attached."""
        g = nx.MultiDiGraph()
        for node in self._nodes.values():
            g.add_node(
                node.fingerprint,
                screen_category=node.screen_category.value if node.screen_category else "",
                visit_count=node.visit_count,
                first_visit_time=node.first_visit_time.isoformat(),
                average_interactive_element_count=node.average_interactive_element_count,
            )
        for edge in self._edges.values():
            g.add_edge(
                edge.from_fingerprint,
                edge.to_fingerprint,
                key=edge.action,
                action=edge.action,
                traversal_count=edge.traversal_count,
            )
        return g

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_node": self.start_node,
            "total_screens": self.total_screens,
            "total_transitions": self.total_transitions,
            "nodes": [n.to_dict() for n in self._nodes.values()],
            "edges": [e.to_dict() for e in self._edges.values()],
        }
