# -*- coding: utf-8 -*-
"""
netmanip.graph_analysis
==================================================

Stock statistic procedures.

Each function follows the statistic-procedure contract
``(network, args) -> float`` and can be passed straight to
:func:`netmanip.statistic.apply_statistic`.  Weighted path-based
measures use connection length = 1 / weight.

Functions
---------
total_weight
    Sum of all adjacency entries.
density
    Fraction of possible (undirected) edges present.
mean_strength
    Mean node strength (row sum).
global_efficiency
    Mean inverse shortest path length.
characteristic_path_length
    Mean finite shortest path length.
weighted_clustering
    Global weighted clustering coefficient.
modularity
    Newman's Q for a partition stored as a node variable.

References
----------
- Rubinov & Sporns (2010). NeuroImage 52:1059-1069.
- Latora & Marchiori (2001). Phys Rev Lett 87:198701.
- Newman (2006). PNAS 103:8577-8582.
"""

import numpy as np
from typing import Any, Dict

from .core import Network


# =============================================================================
# UTILITY: shortest paths
# =============================================================================

def _shortest_paths_weighted(W: np.ndarray) -> np.ndarray:
    """Floyd-Warshall on weighted graph (length = 1/weight)."""
    with np.errstate(divide="ignore"):
        dist = np.where(W > 0, 1.0 / W, np.inf)
    np.fill_diagonal(dist, 0)

    N = W.shape[0]
    sp = dist.copy()
    for k in range(N):
        sp = np.minimum(sp, sp[:, k:k + 1] + sp[k:k + 1, :])
    return sp


# =============================================================================
# STATISTIC PROCEDURES
# =============================================================================

def total_weight(network: Network, args: Dict[str, Any]) -> float:
    """Sum of all adjacency entries (each undirected edge counted twice)."""
    return float(network.adjacency.sum())


def density(network: Network, args: Dict[str, Any]) -> float:
    """Fraction of off-diagonal entries that are nonzero."""
    N = network.n_nodes
    if N < 2:
        return 0.0
    A = network.adjacency
    off_diag = ~np.eye(N, dtype=bool)
    return float((A[off_diag] != 0).sum() / (N * (N - 1)))


def mean_strength(network: Network, args: Dict[str, Any]) -> float:
    """Mean node strength."""
    return float(network.adjacency.sum(axis=1).mean())


def global_efficiency(network: Network, args: Dict[str, Any]) -> float:
    """
    Global efficiency: mean inverse shortest path length.

    Disconnected pairs contribute zero, so the measure stays finite
    after node or edge removal fragments the network.
    """
    N = network.n_nodes
    if N < 2:
        return 0.0
    sp = _shortest_paths_weighted(network.adjacency)
    with np.errstate(divide="ignore"):
        inv_sp = np.where(sp > 0, 1.0 / sp, 0)
    np.fill_diagonal(inv_sp, 0)
    return float(inv_sp.sum() / (N * (N - 1)))


def characteristic_path_length(network: Network, args: Dict[str, Any]) -> float:
    """
    Characteristic path length (mean finite shortest path).

    Undefined when no pair of nodes is connected; callers that remove
    many edges may prefer :func:`global_efficiency`.
    """
    sp = _shortest_paths_weighted(network.adjacency)
    sp_finite = sp[np.isfinite(sp) & (sp > 0)]
    if len(sp_finite) == 0:
        raise ValueError(
            f"network '{network.name}' has no connected pair of nodes"
        )
    return float(sp_finite.mean())


def weighted_clustering(network: Network, args: Dict[str, Any]) -> float:
    """Global weighted clustering coefficient (Onnela, cube-root weights)."""
    A = network.adjacency
    max_w = np.abs(A).max()
    if max_w == 0:
        return 0.0
    W = np.cbrt(np.abs(A) / max_w)
    binary = (A != 0).astype(float)
    numerator = np.diag(W @ W @ W)
    k = binary.sum(axis=1)
    denominator = k * (k - 1)
    valid = denominator > 0
    if valid.sum() == 0:
        return 0.0
    return float((numerator[valid] / denominator[valid]).mean())


def modularity(network: Network, args: Dict[str, Any]) -> float:
    """
    Newman modularity Q of a fixed partition.

    Q = (1 / 2m) Σ_ij [A_ij − k_i k_j / 2m] δ(c_i, c_j)

    Parameters
    ----------
    network : Network
    args : dict
        'variable' : str
            Node variable holding community assignments.
            Default ``'community'``.
    """
    partition = network.node_variable(args.get("variable", "community"))
    A = network.adjacency
    two_m = A.sum()
    if two_m == 0:
        return 0.0
    k = A.sum(axis=1)
    same = partition[:, None] == partition[None, :]
    B = A - np.outer(k, k) / two_m
    return float(B[same].sum() / two_m)
