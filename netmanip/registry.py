# -*- coding: utf-8 -*-
"""
netmanip.registry
==================================================

Explicit name → procedure registries.

The engines only ever accept callables.  A registry is the place where
an application (or a config file) maps string names to those callables;
it is built once at startup and passed around explicitly, never looked
up through module state.

Usage
-----
>>> from netmanip.registry import ProcedureRegistry
>>> stats = ProcedureRegistry("statistic")
>>> @stats.register("edge_count")
... def edge_count(network, args):
...     return float((network.adjacency > 0).sum() / 2)
>>> stats.get("edge_count") is edge_count
True
"""

from typing import Callable, Dict, List, Optional

from .errors import UnknownProcedureError


class ProcedureRegistry:
    """
    Mapping from procedure name to callable.

    Parameters
    ----------
    kind : str
        Human-readable kind, used in error messages
        (e.g. ``'manipulation'``, ``'statistic'``).
    """

    def __init__(self, kind: str = "procedure"):
        self.kind = kind
        self._procedures: Dict[str, Callable] = {}

    def register(self, name: str, procedure: Optional[Callable] = None):
        """
        Register ``procedure`` under ``name``.

        Can be called directly or used as a decorator.  Registering a
        name twice raises ValueError.
        """
        def _add(fn: Callable) -> Callable:
            if not callable(fn):
                raise TypeError(f"{self.kind} '{name}' is not callable")
            if name in self._procedures:
                raise ValueError(
                    f"{self.kind} '{name}' is already registered"
                )
            self._procedures[name] = fn
            return fn

        if procedure is None:
            return _add
        return _add(procedure)

    def get(self, name: str) -> Callable:
        try:
            return self._procedures[name]
        except KeyError:
            raise UnknownProcedureError(name, kind=self.kind) from None

    def names(self) -> List[str]:
        return list(self._procedures)

    def __getitem__(self, name: str) -> Callable:
        return self.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._procedures

    def __len__(self) -> int:
        return len(self._procedures)

    def __repr__(self) -> str:
        return f"ProcedureRegistry({self.kind!r}, {self.names()})"


def default_manipulations() -> ProcedureRegistry:
    """Fresh registry holding the stock manipulation procedures."""
    from .manipulation import (
        remove_each_node,
        remove_node_groups,
        threshold_proportional,
        random_edge_removal,
    )

    registry = ProcedureRegistry("manipulation")
    registry.register("remove_each_node", remove_each_node)
    registry.register("remove_node_groups", remove_node_groups)
    registry.register("threshold_proportional", threshold_proportional)
    registry.register("random_edge_removal", random_edge_removal)
    return registry


def default_statistics() -> ProcedureRegistry:
    """Fresh registry holding the stock statistic procedures."""
    from .graph_analysis import (
        total_weight,
        density,
        mean_strength,
        global_efficiency,
        characteristic_path_length,
        weighted_clustering,
        modularity,
    )

    registry = ProcedureRegistry("statistic")
    registry.register("total_weight", total_weight)
    registry.register("density", density)
    registry.register("mean_strength", mean_strength)
    registry.register("global_efficiency", global_efficiency)
    registry.register("characteristic_path_length", characteristic_path_length)
    registry.register("weighted_clustering", weighted_clustering)
    registry.register("modularity", modularity)
    return registry
