"""Ініціалізація вузлів мережі та топології з'єднань.

Regions are laid out on a circle around the map centre; nodes are
scattered around their region centre with Gaussian jitter and wired to
2–5 neighbours, preferring their own region.  The whole layout is a pure
function of the seed.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime

from src.contracts.config import DEFAULT_REGIONS
from src.contracts.enums import NodeStatus, NodeType
from src.contracts.node import Node
from src.shared.rng import SeededRandom
from src.shared.timeutil import iso, utcnow

log = logging.getLogger(__name__)

NODE_TYPES: list[NodeType] = list(NodeType)

NODE_TYPE_WEIGHTS: dict[NodeType, float] = {
    NodeType.SUBSTATION: 25,
    NodeType.TRANSFORMER: 30,
    NodeType.GENERATOR: 10,
    NodeType.DATACENTER: 15,
    NodeType.TELECOM_TOWER: 10,
    NodeType.WATER_PUMP: 5,
    NodeType.CONTROL_CENTER: 5,
}

NODE_TYPE_NAMES: dict[NodeType, list[str]] = {
    NodeType.SUBSTATION: ["Substation", "Power Hub", "Distribution Center"],
    NodeType.TRANSFORMER: ["Transformer", "Step-Down Unit", "Voltage Regulator"],
    NodeType.GENERATOR: ["Generator", "Power Plant", "Generation Facility"],
    NodeType.DATACENTER: ["Data Center", "Server Farm", "Computing Hub"],
    NodeType.TELECOM_TOWER: ["Cell Tower", "Communication Tower", "Relay Station"],
    NodeType.WATER_PUMP: ["Pump Station", "Water Facility", "Treatment Plant"],
    NodeType.CONTROL_CENTER: ["Control Center", "Operations Hub", "Command Center"],
}

REGION_RADIUS = 35.0
POSITION_JITTER = 12.0
SAME_REGION_BIAS = 0.7
MIN_LINKS = 2
MAX_LINKS = 5


def region_centers(regions: list[str]) -> dict[str, tuple[float, float]]:
    """Place each region centre evenly on a circle around (50, 50)."""
    centers: dict[str, tuple[float, float]] = {}
    for i, region in enumerate(regions):
        angle = i / len(regions) * 2 * math.pi
        centers[region] = (
            50 + REGION_RADIUS * math.cos(angle),
            50 + REGION_RADIUS * math.sin(angle),
        )
    return centers


def _clamp_coord(v: float) -> float:
    return max(0.0, min(100.0, v))


def initialize_nodes(
    seed: int = 12345,
    node_count: int = 200,
    regions: list[str] | None = None,
    now: datetime | None = None,
) -> dict[str, Node]:
    """Build a fresh node map, fully determined by ``seed``.

    Parameters
    ──────────
    seed
        Seed for a dedicated :class:`SeededRandom` (never shared).
    node_count
        Number of nodes; ids run ``node_0000`` … ``node_{n-1:04d}``.
    regions
        Region labels.  Defaults to North/South/East/West/Central.
    now
        Value stamped into ``last_seen``; not part of the seeded state.
    """
    regions = list(regions or DEFAULT_REGIONS)
    rng = SeededRandom(seed)
    centers = region_centers(regions)
    stamp = iso(now or utcnow())
    weights = [NODE_TYPE_WEIGHTS[t] for t in NODE_TYPES]

    nodes: dict[str, Node] = {}
    for i in range(node_count):
        node_id = f"node_{i:04d}"
        region = rng.pick(regions)
        cx, cy = centers[region]
        node_type = rng.weighted_pick(NODE_TYPES, weights)
        x = _clamp_coord(cx + rng.next_gaussian(0, POSITION_JITTER))
        y = _clamp_coord(cy + rng.next_gaussian(0, POSITION_JITTER))
        prefix = rng.pick(NODE_TYPE_NAMES[node_type])
        name = f"{region} {prefix} {rng.next_int(100, 999)}"

        nodes[node_id] = Node(
            id=node_id,
            name=name,
            type=node_type,
            region=region,
            x=x,
            y=y,
            risk_score=rng.next_float(0.05, 0.25),
            health=rng.next_float(0.85, 1.0),
            load_ratio=rng.next_float(0.3, 0.7),
            temperature=rng.next_float(35, 55),
            power_draw=rng.next_float(10, 100),
            status=NodeStatus.ONLINE,
            last_seen=stamp,
        )

    _wire_topology(nodes, rng)
    edges = sum(len(n.connections) for n in nodes.values()) // 2
    log.info(
        "Initialised %d nodes in %d regions (%d edges, seed=%d)",
        len(nodes), len(regions), edges, seed,
    )
    return nodes


def _wire_topology(nodes: dict[str, Node], rng: SeededRandom) -> None:
    """Connect each node to 2–5 neighbours, ~70% within its own region.

    Targets that already hold ``MAX_LINKS`` edges are never picked, so the
    reverse edge cannot push a peer past the cap.  Nodes still below
    ``MIN_LINKS`` after the random pass are topped up in :func:`_top_up`.
    """
    ids = list(nodes)
    for node_id in ids:
        node = nodes[node_id]
        attempts = rng.next_int(MIN_LINKS, MAX_LINKS)

        for _ in range(attempts):
            if len(node.connections) >= MAX_LINKS:
                break
            open_ids = [
                i for i in ids
                if i != node_id
                and i not in node.connections
                and len(nodes[i].connections) < MAX_LINKS
            ]
            same = [i for i in open_ids if nodes[i].region == node.region]
            other = [i for i in open_ids if nodes[i].region != node.region]
            pool = same if rng.next_bool(SAME_REGION_BIAS) and same else other
            if not pool:
                continue
            _link(nodes, node_id, rng.pick(pool))

    for node_id in ids:
        _top_up(nodes, node_id)


def _link(nodes: dict[str, Node], a: str, b: str) -> None:
    nodes[a].connections.append(b)
    nodes[b].connections.append(a)


def _unlink(nodes: dict[str, Node], a: str, b: str) -> None:
    nodes[a].connections.remove(b)
    nodes[b].connections.remove(a)


def _distance(a: Node, b: Node) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def _top_up(nodes: dict[str, Node], node_id: str) -> None:
    """Raise ``node_id`` to ``MIN_LINKS`` edges without breaking the cap.

    Nearest open nodes go first, own region before others.  When every
    candidate is full, an edge ``x—y`` of a full node ``x`` is split into
    ``x—node`` and ``node—y``; ``x`` and ``y`` keep their degree.
    """
    node = nodes[node_id]
    while len(node.connections) < MIN_LINKS:
        candidates = sorted(
            (i for i in nodes if i != node_id and i not in node.connections),
            key=lambda i: (nodes[i].region != node.region, _distance(node, nodes[i]), i),
        )
        target = next((i for i in candidates if len(nodes[i].connections) < MAX_LINKS), None)
        if target is not None:
            _link(nodes, node_id, target)
            continue

        split = next(
            (
                (x, y)
                for x in candidates
                for y in nodes[x].connections
                if y != node_id and y not in node.connections
            ),
            None,
        )
        if split is None:
            log.debug("Node %s left with %d link(s)", node_id, len(node.connections))
            return
        x, y = split
        _unlink(nodes, x, y)
        _link(nodes, node_id, x)
        _link(nodes, node_id, y)
