# -*- coding: utf-8 -*-
"""
netmanip.statistic
==================================================

Statistic engine.

A statistic procedure reduces one Network to one real number::

    procedure(network, args) -> float

The engine evaluates it on the original network and on every derived
network of a manipulated set, keeping exactly the labels the
manipulation produced.  Values are never cached: identical labels in
different subjects are computed independently.

Functions
---------
apply_statistic
    Dispatch a statistic over a ManipulatedNetworkSet or
    ManipulatedSampleSet.
compute_statistics
    Manipulate and compute subject by subject, discarding derived
    networks as soon as their statistic is known.
"""

import numbers
import numpy as np
from typing import Any, Callable, Dict, Optional, Union

from .core import (
    Network,
    NetworkSample,
    ManipulatedNetworkSet,
    ManipulatedSampleSet,
    StatisticSet,
    SampleStatisticSet,
    SampleVariableRef,
    ORIGINAL_LABEL,
)
from .errors import ContractViolation, MissingVariableError, NetManipError
from .manipulation import apply_manipulation, _procedure_name


StatisticProcedure = Callable[[Network, Dict[str, Any]], float]


# =============================================================================
# ENGINE
# =============================================================================

def apply_statistic(
    manipulated: Union[ManipulatedNetworkSet, ManipulatedSampleSet],
    procedure: StatisticProcedure,
    args: Optional[Dict[str, Any]] = None,
    verbose: bool = False,
) -> Union[StatisticSet, SampleStatisticSet]:
    """
    Compute a statistic on the original and every derived network.

    Parameters
    ----------
    manipulated : ManipulatedNetworkSet or ManipulatedSampleSet
    procedure : callable
        ``procedure(network, args) -> float``.
    args : dict, optional
        Argument bag.  For a ManipulatedSampleSet, values created with
        :func:`netmanip.core.sample_var` are replaced by the current
        subject's sample-variable value.
    verbose : bool

    Returns
    -------
    StatisticSet
        For a ManipulatedNetworkSet.
    SampleStatisticSet
        For a ManipulatedSampleSet; one StatisticSet per subject, with
        the sample variables carried over.

    Raises
    ------
    ContractViolation
        If the procedure raises or returns anything but a finite real
        number.  No partial result is returned.
    """
    _check_callable(procedure)
    args = {} if args is None else dict(args)

    if isinstance(manipulated, ManipulatedNetworkSet):
        _reject_sample_refs(args)
        return _statistic_set(manipulated, procedure, args)

    if isinstance(manipulated, ManipulatedSampleSet):
        sample = manipulated.original
        n_sub = sample.n_subjects
        if verbose:
            print(f"  Statistic: {n_sub} subjects, "
                  f"procedure {_procedure_name(procedure)}")
        sets = []
        for i, mset in enumerate(manipulated.sets):
            subject_args = _resolve_sample_args(args, sample, i)
            sets.append(_statistic_set(mset, procedure, subject_args))
            if verbose and (i + 1) % max(1, n_sub // 10) == 0:
                print(f"    {i + 1}/{n_sub}")
        return SampleStatisticSet(
            sets=sets,
            sample_variables=dict(sample.sample_variables),
            subject_ids=sample.subject_ids,
        )

    raise TypeError(
        f"Cannot compute a statistic on {type(manipulated).__name__}; "
        f"expected ManipulatedNetworkSet or ManipulatedSampleSet"
    )


def compute_statistics(
    entity: Union[Network, NetworkSample],
    manipulation: Callable,
    statistic: StatisticProcedure,
    manipulation_args: Optional[Dict[str, Any]] = None,
    statistic_args: Optional[Dict[str, Any]] = None,
    verbose: bool = False,
) -> Union[StatisticSet, SampleStatisticSet]:
    """
    Manipulate and compute statistics in one pass.

    Equivalent to ``apply_statistic(apply_manipulation(entity, ...), ...)``
    but derived networks of a subject are dropped once its statistics
    are computed, so peak memory holds one subject's derived networks
    instead of the whole sample's.
    """
    _check_callable(statistic)
    statistic_args = {} if statistic_args is None else dict(statistic_args)

    if isinstance(entity, Network):
        mset = apply_manipulation(entity, manipulation, manipulation_args)
        _reject_sample_refs(statistic_args)
        return _statistic_set(mset, statistic, statistic_args)

    if isinstance(entity, NetworkSample):
        n_sub = entity.n_subjects
        if verbose:
            print(f"  Manipulate + statistic: {n_sub} subjects")
        sets = []
        for i, network in enumerate(entity.networks):
            mset = apply_manipulation(network, manipulation, manipulation_args)
            subject_args = _resolve_sample_args(statistic_args, entity, i)
            sets.append(_statistic_set(mset, statistic, subject_args))
            del mset
            if verbose and (i + 1) % max(1, n_sub // 10) == 0:
                print(f"    {i + 1}/{n_sub}")
        return SampleStatisticSet(
            sets=sets,
            sample_variables=dict(entity.sample_variables),
            subject_ids=entity.subject_ids,
        )

    raise TypeError(
        f"Cannot manipulate {type(entity).__name__}; expected Network "
        f"or NetworkSample"
    )


# =============================================================================
# HELPERS
# =============================================================================

def _check_callable(procedure) -> None:
    if not callable(procedure):
        raise TypeError(
            f"Statistic procedure must be callable, got "
            f"{type(procedure).__name__}"
        )


def _statistic_set(
    mset: ManipulatedNetworkSet,
    procedure: StatisticProcedure,
    args: Dict[str, Any],
) -> StatisticSet:
    original = _evaluate(procedure, mset.original, args, ORIGINAL_LABEL)
    values = {
        label: _evaluate(procedure, network, args, label)
        for label, network in mset.derived.items()
    }
    return StatisticSet(
        original=original, values=values, name=mset.original.name,
    )


def _evaluate(
    procedure: StatisticProcedure,
    network: Network,
    args: Dict[str, Any],
    label: str,
) -> float:
    where = (f"{_procedure_name(procedure)} on network "
             f"'{network.name}', label '{label}'")
    try:
        value = procedure(network, dict(args))
    except NetManipError:
        raise
    except Exception as exc:
        raise ContractViolation(
            f"Statistic {where} raised: {exc}", label=label,
        ) from exc
    return _as_real(value, where, label)


def _as_real(value: Any, where: str, label: str) -> float:
    if isinstance(value, np.ndarray) and value.ndim == 0:
        value = value.item()
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Real):
        raise ContractViolation(
            f"Statistic {where} returned {type(value).__name__}, "
            f"expected a real number",
            label=label,
        )
    value = float(value)
    if not np.isfinite(value):
        raise ContractViolation(
            f"Statistic {where} returned non-finite value {value}",
            label=label,
        )
    return value


def _resolve_sample_args(
    args: Dict[str, Any], sample: NetworkSample, index: int,
) -> Dict[str, Any]:
    resolved = {}
    for key, value in args.items():
        if isinstance(value, SampleVariableRef):
            value = sample.sample_variable(value.name)[index]
            if isinstance(value, np.generic):
                value = value.item()
        resolved[key] = value
    return resolved


def _reject_sample_refs(args: Dict[str, Any]) -> None:
    for value in args.values():
        if isinstance(value, SampleVariableRef):
            raise MissingVariableError(value.name, kind="sample")
