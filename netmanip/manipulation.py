# -*- coding: utf-8 -*-
"""
netmanip.manipulation
==================================================

Manipulation engine and stock manipulation procedures.

A manipulation procedure turns one Network into a labelled collection
of derived Networks::

    procedure(network, args) -> {label: Network, ...}

The engine applies a procedure to a single Network or to every subject
of a NetworkSample (independently, in subject order) and validates what
comes back.  It never inspects how the derived networks were made;
procedures may shrink the node set (node removal) as long as each
derived Network keeps its node variables aligned with its own
adjacency dimension.

Functions
---------
apply_manipulation
    Dispatch a procedure over a Network or NetworkSample.
remove_each_node
    One derived network per node, with that node removed.
remove_node_groups
    One derived network per value of a node variable (e.g. community),
    with all nodes carrying that value removed.
threshold_proportional
    Keep the strongest proportion of edges, one network per proportion.
random_edge_removal
    Repeated random removal of a fraction of edges.
"""

import numpy as np
from collections.abc import Mapping
from typing import Any, Callable, Dict, Optional, Union

from .core import (
    ORIGINAL_LABEL,
    Network,
    NetworkSample,
    ManipulatedNetworkSet,
    ManipulatedSampleSet,
)
from .errors import ContractViolation, DimensionMismatch, NetManipError


ManipulationProcedure = Callable[[Network, Dict[str, Any]], Mapping]


# =============================================================================
# ENGINE
# =============================================================================

def apply_manipulation(
    entity: Union[Network, NetworkSample],
    procedure: ManipulationProcedure,
    args: Optional[Dict[str, Any]] = None,
    verbose: bool = False,
) -> Union[ManipulatedNetworkSet, ManipulatedSampleSet]:
    """
    Apply a manipulation procedure to a Network or NetworkSample.

    Parameters
    ----------
    entity : Network or NetworkSample
    procedure : callable
        ``procedure(network, args) -> {label: Network}``.  Must return a
        non-empty mapping with string labels.
    args : dict, optional
        Argument bag handed to every invocation.  Each invocation gets
        its own shallow copy.
    verbose : bool

    Returns
    -------
    ManipulatedNetworkSet
        If ``entity`` is a Network.
    ManipulatedSampleSet
        If ``entity`` is a NetworkSample; one set per subject, in
        subject order.

    Raises
    ------
    ContractViolation
        If the procedure raises, returns something other than a
        non-empty mapping of string labels to Networks, uses the
        reserved label ``'original'``, or returns a Network whose node
        variables do not match its adjacency dimension.
    """
    if not callable(procedure):
        raise TypeError(
            f"Manipulation procedure must be callable, got "
            f"{type(procedure).__name__}"
        )
    args = {} if args is None else dict(args)

    if isinstance(entity, Network):
        return _manipulate_network(entity, procedure, args)

    if isinstance(entity, NetworkSample):
        n_sub = entity.n_subjects
        if verbose:
            print(f"  Manipulation: {n_sub} subjects, "
                  f"procedure {_procedure_name(procedure)}")
        sets = []
        for i, network in enumerate(entity.networks):
            sets.append(_manipulate_network(network, procedure, args))
            if verbose and (i + 1) % max(1, n_sub // 10) == 0:
                print(f"    {i + 1}/{n_sub}")
        return ManipulatedSampleSet(original=entity, sets=sets)

    raise TypeError(
        f"Cannot manipulate {type(entity).__name__}; expected Network "
        f"or NetworkSample"
    )


def _manipulate_network(
    network: Network,
    procedure: ManipulationProcedure,
    args: Dict[str, Any],
) -> ManipulatedNetworkSet:
    try:
        result = procedure(network, dict(args))
    except NetManipError:
        raise
    except Exception as exc:
        raise ContractViolation(
            f"Manipulation {_procedure_name(procedure)} failed on "
            f"network '{network.name}': {exc}"
        ) from exc

    derived = _validate_manipulation_result(result, network, procedure)
    return ManipulatedNetworkSet(original=network, derived=derived)


def _validate_manipulation_result(
    result: Any, network: Network, procedure: Callable,
) -> Dict[str, Network]:
    where = f"{_procedure_name(procedure)} on network '{network.name}'"

    if not isinstance(result, Mapping):
        raise ContractViolation(
            f"Manipulation {where} returned {type(result).__name__}, "
            f"expected a mapping of label -> Network"
        )
    if len(result) == 0:
        raise ContractViolation(
            f"Manipulation {where} returned no derived networks"
        )

    derived = {}
    for label, value in result.items():
        if not isinstance(label, str):
            raise ContractViolation(
                f"Manipulation {where} returned non-string label "
                f"{label!r}",
                label=str(label),
            )
        if label == ORIGINAL_LABEL:
            raise ContractViolation(
                f"Manipulation {where} used the reserved label "
                f"'{ORIGINAL_LABEL}'",
                label=label,
            )
        if label in derived:
            raise ContractViolation(
                f"Manipulation {where} returned duplicate label '{label}'",
                label=label,
            )
        if not isinstance(value, Network):
            raise ContractViolation(
                f"Manipulation {where} returned "
                f"{type(value).__name__} for label '{label}', "
                f"expected Network",
                label=label,
            )
        try:
            value.validate()
        except DimensionMismatch as exc:
            raise ContractViolation(
                f"Manipulation {where}, label '{label}': {exc}",
                label=label,
            ) from exc
        derived[label] = value

    return derived


def _procedure_name(procedure: Callable) -> str:
    return getattr(procedure, "__name__", type(procedure).__name__)


# =============================================================================
# STOCK MANIPULATIONS
# =============================================================================

def _arg(args: Dict[str, Any], key: str) -> Any:
    if key not in args:
        raise TypeError(f"missing required argument '{key}'")
    return args[key]


def remove_each_node(network: Network, args: Dict[str, Any]) -> Dict[str, Network]:
    """
    Lesion each node in turn.

    Label ``str(i)`` is the network with the i-th node (1-based) removed.

    Parameters
    ----------
    network : Network
    args : dict
        'nodes' : sequence of int, optional
            1-based node positions to remove.  Default: all nodes.
    """
    n = network.n_nodes
    if n < 2:
        raise ValueError("node removal needs at least 2 nodes")
    nodes = args.get("nodes")
    positions = range(1, n + 1) if nodes is None else [int(p) for p in nodes]

    derived = {}
    all_idx = np.arange(n)
    for pos in positions:
        if not 1 <= pos <= n:
            raise ValueError(f"node position {pos} outside 1..{n}")
        if str(pos) in derived:
            raise ValueError(f"node position {pos} given more than once")
        derived[str(pos)] = network.subset(np.delete(all_idx, pos - 1))
    return derived


def remove_node_groups(network: Network, args: Dict[str, Any]) -> Dict[str, Network]:
    """
    Remove every node sharing one value of a node variable.

    With a community partition as node variable this is the classic
    "lesion one module at a time" manipulation.  Labels are the
    variable's values as strings, in order of first appearance.

    Parameters
    ----------
    network : Network
    args : dict
        'variable' : str
            Name of the node variable holding the grouping.
        'groups' : sequence, optional
            Restrict to these values.

    Raises
    ------
    ContractViolation
        If one group holds every node, so that removing it would leave
        an empty network.
    """
    values = network.node_variable(_arg(args, "variable"))
    wanted = args.get("groups")

    groups = []
    for v in values:
        if v not in groups:
            groups.append(v)
    if wanted is not None:
        groups = [g for g in groups if g in set(wanted)]

    derived = {}
    for g in groups:
        keep = np.flatnonzero(values != g)
        if len(keep) == 0:
            raise ContractViolation(
                f"Removing group '{g}' of node variable "
                f"'{args['variable']}' would leave network "
                f"'{network.name}' with no nodes",
                label=str(g),
            )
        derived[str(g)] = network.subset(keep)
    return derived


def _edge_index(adjacency: np.ndarray):
    """Index arrays of candidate edges and whether the graph is undirected."""
    n = adjacency.shape[0]
    symmetric = np.allclose(adjacency, adjacency.T)
    if symmetric:
        idx = np.triu_indices(n, k=1)
    else:
        idx = np.where(~np.eye(n, dtype=bool))
    return idx, symmetric


def _from_edges(adjacency, idx, keep, symmetric):
    out = np.zeros_like(adjacency)
    rows, cols = idx[0][keep], idx[1][keep]
    out[rows, cols] = adjacency[rows, cols]
    if symmetric:
        out = out + out.T
    return out


def threshold_proportional(
    network: Network, args: Dict[str, Any],
) -> Dict[str, Network]:
    """
    Proportional thresholding.

    For each proportion p, keep the ``round(p × E)`` strongest edges
    (by absolute weight) of the E existing edges and zero the rest.
    Undirected networks are thresholded on the upper triangle and
    mirrored.

    Parameters
    ----------
    network : Network
    args : dict
        'proportions' : sequence of float in (0, 1]
            Default: 0.1, 0.2, …, 0.5.
    """
    proportions = args.get("proportions", (0.1, 0.2, 0.3, 0.4, 0.5))
    A = network.adjacency
    idx, symmetric = _edge_index(A)
    w = np.abs(A[idx])
    existing = np.flatnonzero(w > 0)
    ranked = existing[np.argsort(-w[existing], kind="stable")]

    derived = {}
    for p in proportions:
        p = float(p)
        if not 0 < p <= 1:
            raise ValueError(f"proportion {p} outside (0, 1]")
        n_keep = int(round(p * len(existing)))
        label = f"{p:g}"
        if label in derived:
            raise ValueError(
                f"proportion {p} repeats label '{label}'"
            )
        derived[label] = network.with_adjacency(
            _from_edges(A, idx, ranked[:n_keep], symmetric)
        )
    return derived


def random_edge_removal(
    network: Network, args: Dict[str, Any],
) -> Dict[str, Network]:
    """
    Random attack: remove a fraction of existing edges, repeatedly.

    Parameters
    ----------
    network : Network
    args : dict
        'fraction' : float in [0, 1]
            Fraction of edges to remove in each repeat.
        'n_repeats' : int
            Default 10.  Labels are ``rep1`` … ``rep{n_repeats}``.
        'seed' : int
            Default 42.
    """
    fraction = float(_arg(args, "fraction"))
    if not 0 <= fraction <= 1:
        raise ValueError(f"fraction {fraction} outside [0, 1]")
    n_repeats = int(args.get("n_repeats", 10))
    rng = np.random.default_rng(args.get("seed", 42))

    A = network.adjacency
    idx, symmetric = _edge_index(A)
    existing = np.flatnonzero(A[idx] != 0)
    n_remove = int(round(fraction * len(existing)))

    derived = {}
    for r in range(n_repeats):
        removed = rng.choice(existing, size=n_remove, replace=False)
        keep = np.setdiff1d(existing, removed)
        derived[f"rep{r + 1}"] = network.with_adjacency(
            _from_edges(A, idx, keep, symmetric)
        )
    return derived
