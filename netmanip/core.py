# -*- coding: utf-8 -*-
"""
netmanip.core
==================================================

Entity model for samples of registered networks.

A *registered* sample is a set of networks defined on one fixed node
set, so that node i means the same region (or agent, or gene) in every
subject.  Node variables (e.g. community labels) are therefore shared
by all subjects, while sample variables (e.g. diagnosis, age) carry one
value per subject.

The entities form a strict pipeline::

    Network / NetworkSample
        └─ apply_manipulation ─→ ManipulatedNetworkSet / ManipulatedSampleSet
            └─ apply_statistic ─→ StatisticSet / SampleStatisticSet

All entities are value objects: they are built once, validated in
``__post_init__``, and never mutated afterwards.  Adjacency matrices
and variable arrays are copied and flagged read-only.

Classes
-------
Network
    Square adjacency matrix, name, node variables.
NetworkSample
    Ordered subjects sharing node count and node variables, plus
    sample variables.
ManipulatedNetworkSet
    Original Network and its labelled derived Networks.
ManipulatedSampleSet
    Original NetworkSample and one ManipulatedNetworkSet per subject.
StatisticSet
    Original statistic value and one value per label.
SampleStatisticSet
    One StatisticSet per subject plus the carried-over sample variables.

Functions
---------
make_network, make_sample
    Constructors that normalise inputs and broadcast node variables.
load_network, load_sample
    Read adjacency matrices from delimited text files.
sample_var
    Reference to a sample variable, resolved per subject by the
    statistic engine.
"""

import numpy as np
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Union
from dataclasses import dataclass, field

from .errors import DimensionMismatch, MissingVariableError


ORIGINAL_LABEL = "original"


def _frozen(values, dtype=None) -> np.ndarray:
    arr = np.array(values, dtype=dtype, copy=True)
    arr.setflags(write=False)
    return arr


# =============================================================================
# NETWORKS
# =============================================================================

@dataclass
class Network:
    """
    A single network on a fixed node set.

    Parameters
    ----------
    adjacency : np.ndarray (n, n)
        Weighted or binary adjacency matrix.  Stored as a read-only
        float copy.
    name : str
        Network (subject) identifier.
    node_variables : dict
        Variable name → sequence of length n.
    """

    adjacency: np.ndarray
    name: str = ""
    node_variables: Dict[str, np.ndarray] = field(default_factory=dict)

    def __post_init__(self):
        adj = _frozen(self.adjacency, dtype=float)
        if adj.ndim != 2 or adj.shape[0] != adj.shape[1]:
            raise DimensionMismatch(
                f"Adjacency of network '{self.name}' must be square, "
                f"got shape {adj.shape}"
            )
        if adj.shape[0] < 1:
            raise DimensionMismatch(
                f"Network '{self.name}' must have at least one node"
            )
        self.adjacency = adj
        self.name = str(self.name)
        self.node_variables = {
            str(k): _frozen(v) for k, v in dict(self.node_variables).items()
        }
        self.validate()

    @property
    def n_nodes(self) -> int:
        return self.adjacency.shape[0]

    def validate(self) -> None:
        """Check every node variable has exactly ``n_nodes`` entries."""
        n = self.n_nodes
        for var_name, values in self.node_variables.items():
            if np.ndim(values) != 1 or len(values) != n:
                raise DimensionMismatch(
                    f"Node variable '{var_name}' of network '{self.name}' "
                    f"has length {np.size(values)}, expected {n}",
                    name=var_name,
                )

    def node_variable(self, name: str) -> np.ndarray:
        """Return node variable ``name`` or raise MissingVariableError."""
        try:
            return self.node_variables[name]
        except KeyError:
            raise MissingVariableError(name, kind="node") from None

    def subset(self, keep: Sequence[int], name: Optional[str] = None) -> "Network":
        """
        Induced subnetwork on the node indices in ``keep``.

        Node variables are sliced with the same indices so the result
        satisfies the node-variable length invariant.
        """
        keep = np.asarray(keep, dtype=int)
        return Network(
            adjacency=self.adjacency[np.ix_(keep, keep)],
            name=self.name if name is None else name,
            node_variables={
                k: v[keep] for k, v in self.node_variables.items()
            },
        )

    def with_adjacency(self, adjacency: np.ndarray,
                       name: Optional[str] = None) -> "Network":
        """Same node set and variables, new adjacency matrix."""
        return Network(
            adjacency=adjacency,
            name=self.name if name is None else name,
            node_variables=dict(self.node_variables),
        )


@dataclass
class NetworkSample:
    """
    Ordered sample of registered networks ("subjects").

    Parameters
    ----------
    networks : list of Network
        All with the same node count and node-variable names.  Network
        names serve as subject ids and must be unique.
    sample_variables : dict
        Variable name → sequence with one entry per subject.
    """

    networks: List[Network]
    sample_variables: Dict[str, np.ndarray] = field(default_factory=dict)

    def __post_init__(self):
        self.networks = list(self.networks)
        if not self.networks:
            raise ValueError("NetworkSample needs at least one network")

        n = self.networks[0].n_nodes
        var_names = set(self.networks[0].node_variables)
        for net in self.networks[1:]:
            if net.n_nodes != n:
                raise DimensionMismatch(
                    f"Subject '{net.name}' has {net.n_nodes} nodes, "
                    f"expected {n}"
                )
            if set(net.node_variables) != var_names:
                raise DimensionMismatch(
                    f"Subject '{net.name}' node variables "
                    f"{sorted(net.node_variables)} differ from "
                    f"{sorted(var_names)}"
                )

        ids = self.subject_ids
        if len(set(ids)) != len(ids):
            raise ValueError(f"Subject ids must be unique, got {ids}")

        self.sample_variables = {
            str(k): _frozen(v) for k, v in dict(self.sample_variables).items()
        }
        for var_name, values in self.sample_variables.items():
            if np.ndim(values) != 1 or len(values) != len(self.networks):
                raise DimensionMismatch(
                    f"Sample variable '{var_name}' has length "
                    f"{np.size(values)}, expected {len(self.networks)}",
                    name=var_name,
                )

    @property
    def n_subjects(self) -> int:
        return len(self.networks)

    @property
    def n_nodes(self) -> int:
        return self.networks[0].n_nodes

    @property
    def subject_ids(self) -> List[str]:
        return [net.name for net in self.networks]

    @property
    def node_variable_names(self) -> List[str]:
        return list(self.networks[0].node_variables)

    def sample_variable(self, name: str) -> np.ndarray:
        """Return sample variable ``name`` or raise MissingVariableError."""
        try:
            return self.sample_variables[name]
        except KeyError:
            raise MissingVariableError(name, kind="sample") from None

    def __len__(self) -> int:
        return len(self.networks)

    def __iter__(self) -> Iterator[Network]:
        return iter(self.networks)

    def __getitem__(self, idx: int) -> Network:
        return self.networks[idx]


# =============================================================================
# MANIPULATED SETS
# =============================================================================

@dataclass
class ManipulatedNetworkSet:
    """
    Original Network plus labelled derived Networks.

    Parameters
    ----------
    original : Network
    derived : dict
        Label → derived Network, in the order produced by the
        manipulation procedure.
    """

    original: Network
    derived: Dict[str, Network]

    @property
    def labels(self) -> List[str]:
        return list(self.derived)

    def __getitem__(self, label: str) -> Network:
        return self.derived[label]

    def __len__(self) -> int:
        return len(self.derived)


@dataclass
class ManipulatedSampleSet:
    """
    Original NetworkSample plus one ManipulatedNetworkSet per subject.
    """

    original: NetworkSample
    sets: List[ManipulatedNetworkSet]

    def __post_init__(self):
        self.sets = list(self.sets)
        if len(self.sets) != self.original.n_subjects:
            raise DimensionMismatch(
                f"{len(self.sets)} manipulated sets for "
                f"{self.original.n_subjects} subjects"
            )

    @property
    def subject_ids(self) -> List[str]:
        return self.original.subject_ids

    @property
    def labels(self) -> List[str]:
        return _labels_in_order(s.labels for s in self.sets)

    def __len__(self) -> int:
        return len(self.sets)

    def __getitem__(self, idx: int) -> ManipulatedNetworkSet:
        return self.sets[idx]


# =============================================================================
# STATISTIC SETS
# =============================================================================

@dataclass
class StatisticSet:
    """
    Statistic of the original network and of each derived network.

    Parameters
    ----------
    original : float
    values : dict
        Label → statistic value of the derived network.
    name : str
        Name of the network the set was computed from.
    """

    original: float
    values: Dict[str, float]
    name: str = ""

    @property
    def labels(self) -> List[str]:
        return list(self.values)

    def differences(self) -> Dict[str, float]:
        """Label → derived value minus original value."""
        return {k: v - self.original for k, v in self.values.items()}

    def __getitem__(self, label: str) -> float:
        return self.values[label]

    def __len__(self) -> int:
        return len(self.values)


@dataclass
class SampleStatisticSet:
    """
    One StatisticSet per subject, with sample variables carried over.

    Parameters
    ----------
    sets : list of StatisticSet
    sample_variables : dict
        Variable name → array with one entry per subject.
    subject_ids : list of str
    """

    sets: List[StatisticSet]
    sample_variables: Dict[str, np.ndarray] = field(default_factory=dict)
    subject_ids: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.sets = list(self.sets)
        if not self.subject_ids:
            self.subject_ids = [
                s.name or f"subject{i + 1}" for i, s in enumerate(self.sets)
            ]
        self.subject_ids = [str(s) for s in self.subject_ids]
        if len(self.subject_ids) != len(self.sets):
            raise DimensionMismatch(
                f"{len(self.subject_ids)} subject ids for "
                f"{len(self.sets)} statistic sets"
            )
        if len(set(self.subject_ids)) != len(self.subject_ids):
            raise ValueError(
                f"Subject ids must be unique, got {self.subject_ids}"
            )
        self.sample_variables = {
            str(k): _frozen(v) for k, v in dict(self.sample_variables).items()
        }
        for var_name, values in self.sample_variables.items():
            if np.ndim(values) != 1 or len(values) != len(self.sets):
                raise DimensionMismatch(
                    f"Sample variable '{var_name}' has length "
                    f"{np.size(values)}, expected {len(self.sets)}",
                    name=var_name,
                )

    @property
    def n_subjects(self) -> int:
        return len(self.sets)

    @property
    def labels(self) -> List[str]:
        """All labels, ordered by first appearance across subjects."""
        return _labels_in_order(s.labels for s in self.sets)

    def label_counts(self) -> Dict[str, int]:
        """Label → number of subjects carrying it."""
        counts = {label: 0 for label in self.labels}
        for s in self.sets:
            for label in s.values:
                counts[label] += 1
        return counts

    def sample_variable(self, name: str) -> np.ndarray:
        """Return sample variable ``name`` or raise MissingVariableError."""
        try:
            return self.sample_variables[name]
        except KeyError:
            raise MissingVariableError(name, kind="sample") from None

    def __len__(self) -> int:
        return len(self.sets)

    def __getitem__(self, idx: int) -> StatisticSet:
        return self.sets[idx]


def _labels_in_order(label_lists) -> List[str]:
    seen = {}
    for labels in label_lists:
        for label in labels:
            seen.setdefault(label, None)
    return list(seen)


# =============================================================================
# SAMPLE-VARIABLE REFERENCES
# =============================================================================

@dataclass(frozen=True)
class SampleVariableRef:
    """
    Placeholder for a per-subject sample-variable value inside a
    statistic argument bag.  See :func:`sample_var`.
    """

    name: str


def sample_var(name: str) -> SampleVariableRef:
    """
    Reference sample variable ``name`` from a statistic argument bag.

    When :func:`netmanip.statistic.apply_statistic` runs on a sample,
    each ``SampleVariableRef`` value in ``args`` is replaced with the
    current subject's value before the procedure is called::

        apply_statistic(msets, weighted_by_age, {"age": sample_var("age")})
    """
    return SampleVariableRef(name)


# =============================================================================
# CONSTRUCTORS
# =============================================================================

ArrayLike = Union[np.ndarray, Sequence[Sequence[float]]]


def make_network(
    adjacency: ArrayLike,
    name: str = "",
    node_variables: Optional[Mapping[str, Sequence[Any]]] = None,
) -> Network:
    """
    Build a Network from an adjacency matrix.

    Parameters
    ----------
    adjacency : array-like (n, n)
    name : str
    node_variables : dict, optional
        Variable name → sequence of length n.

    Returns
    -------
    Network

    Raises
    ------
    DimensionMismatch
        If the matrix is not square or a node variable has the wrong
        length.
    """
    return Network(
        adjacency=adjacency,
        name=name,
        node_variables=dict(node_variables or {}),
    )


def make_sample(
    networks: Sequence[Union[Network, ArrayLike]],
    node_variables: Optional[Mapping[str, Sequence[Any]]] = None,
    sample_variables: Optional[Mapping[str, Sequence[Any]]] = None,
    subject_ids: Optional[Sequence[str]] = None,
) -> NetworkSample:
    """
    Build a NetworkSample, broadcasting node variables to every subject.

    Parameters
    ----------
    networks : sequence of Network or adjacency matrices
    node_variables : dict, optional
        Shared node variables.  These are added to (and override) any
        node variables already attached to Network inputs.
    sample_variables : dict, optional
        Variable name → sequence with one entry per subject.
    subject_ids : sequence of str, optional
        Default: the Network's name if set, else ``subject1``,
        ``subject2``, ….

    Returns
    -------
    NetworkSample
    """
    networks = list(networks)
    if subject_ids is not None and len(subject_ids) != len(networks):
        raise DimensionMismatch(
            f"{len(subject_ids)} subject ids for {len(networks)} networks"
        )

    shared = dict(node_variables or {})
    members = []
    for i, item in enumerate(networks):
        if isinstance(item, Network):
            adjacency = item.adjacency
            variables = {**item.node_variables, **shared}
            default_name = item.name or f"subject{i + 1}"
        else:
            adjacency = item
            variables = dict(shared)
            default_name = f"subject{i + 1}"
        name = subject_ids[i] if subject_ids is not None else default_name
        members.append(Network(adjacency, name=name, node_variables=variables))

    return NetworkSample(
        networks=members,
        sample_variables=dict(sample_variables or {}),
    )


# =============================================================================
# LOADING
# =============================================================================

def load_network(
    path: Union[str, Path],
    delimiter: Optional[str] = None,
    name: Optional[str] = None,
    node_variables: Optional[Mapping[str, Sequence[Any]]] = None,
) -> Network:
    """
    Load a Network from a delimited text adjacency matrix.

    Parameters
    ----------
    path : str or Path
    delimiter : str, optional
        Passed to ``np.loadtxt``; None splits on whitespace.
    name : str, optional
        Default: file stem.
    node_variables : dict, optional

    Returns
    -------
    Network
    """
    path = Path(path)
    adjacency = np.loadtxt(path, delimiter=delimiter, ndmin=2)
    return make_network(
        adjacency,
        name=path.stem if name is None else name,
        node_variables=node_variables,
    )


def load_sample(
    paths: Sequence[Union[str, Path]],
    delimiter: Optional[str] = None,
    node_variables: Optional[Mapping[str, Sequence[Any]]] = None,
    sample_variables: Optional[Mapping[str, Sequence[Any]]] = None,
    subject_ids: Optional[Sequence[str]] = None,
) -> NetworkSample:
    """
    Load one Network per file and assemble a NetworkSample.

    Subject ids default to the file stems.
    """
    networks = [load_network(p, delimiter=delimiter) for p in paths]
    return make_sample(
        networks,
        node_variables=node_variables,
        sample_variables=sample_variables,
        subject_ids=subject_ids,
    )
