# -*- coding: utf-8 -*-
"""
netmanip
==============================

Manipulation experiments on samples of registered networks.

Virtual lesion studies, thresholding sweeps and random attacks all
follow the same recipe: take each subject's network, derive a named
set of manipulated networks from it, reduce every network to a scalar
statistic, and ask whether the manipulation changes the statistic, and
whether it does so differently between groups of subjects.

This package provides that recipe as three composable steps:

    1. Manipulation engine: any procedure
       ``(network, args) -> {label: network}`` applied to one network
       or to every subject of a sample.
    2. Statistic engine: any procedure ``(network, args) -> float``
       evaluated on the original and every derived network.
    3. Label-wise hypothesis tests: derived vs original (paired),
       group vs group (unpaired), and group × manipulation
       (unpaired on the differences).

Modules
-------
core
    Network, NetworkSample, manipulated and statistic sets;
    constructors and text-file loading.
errors
    ContractViolation, DimensionMismatch, MissingVariableError,
    GroupConfigurationError, InsufficientDataError.
registry
    Explicit name → procedure registries.
manipulation
    Manipulation engine; node / module lesions, proportional
    thresholding, random edge removal.
graph_analysis
    Stock statistics: strength, density, efficiency, path length,
    clustering, modularity.
statistic
    Statistic engine.
inference
    diff_test, group_test, group_diff_test with parametric or rank
    methods and optional Bonferroni / FDR correction.
export
    Long-format tables, pandas DataFrames, TSV export.
viz
    Figures for test results and per-subject manipulation effects.

Pipeline
--------
::

    from netmanip import (
        make_sample, apply_manipulation, apply_statistic,
        remove_each_node, global_efficiency, diff_test, group_diff_test,
        InferenceConfig,
    )

    sample = make_sample(
        matrices,
        node_variables={"community": communities},
        sample_variables={"group": ["patient"] * 10 + ["control"] * 10},
    )
    lesioned = apply_manipulation(sample, remove_each_node)
    eff = apply_statistic(lesioned, global_efficiency)

    effect = diff_test(eff)
    interaction = group_diff_test(
        eff, "group", config=InferenceConfig(correction="fdr"),
    )

References
----------
- Rubinov & Sporns (2010). NeuroImage 52:1059-1069.
- Alstott et al. (2009). PLoS Comput Biol 5:e1000408.
- Achard et al. (2006). J Neurosci 26:63-72.
"""

__version__ = "0.1.0"

# === errors ===
from .errors import (
    NetManipError,
    ContractViolation,
    DimensionMismatch,
    MissingVariableError,
    GroupConfigurationError,
    InsufficientDataError,
    UnknownProcedureError,
)

# === core ===
from .core import (
    ORIGINAL_LABEL,
    Network,
    NetworkSample,
    ManipulatedNetworkSet,
    ManipulatedSampleSet,
    StatisticSet,
    SampleStatisticSet,
    SampleVariableRef,
    sample_var,
    make_network,
    make_sample,
    load_network,
    load_sample,
)

# === registry ===
from .registry import (
    ProcedureRegistry,
    default_manipulations,
    default_statistics,
)

# === manipulation ===
from .manipulation import (
    apply_manipulation,
    remove_each_node,
    remove_node_groups,
    threshold_proportional,
    random_edge_removal,
)

# === graph_analysis ===
from .graph_analysis import (
    total_weight,
    density,
    mean_strength,
    global_efficiency,
    characteristic_path_length,
    weighted_clustering,
    modularity,
)

# === statistic ===
from .statistic import (
    apply_statistic,
    compute_statistics,
)

# === inference ===
from .inference import (
    InferenceConfig,
    diff_test,
    group_test,
    group_diff_test,
    label_overlap,
    adjust_p_values,
)

# === export ===
from .export import (
    to_table,
    to_dataframe,
    results_to_dataframe,
    export_table,
)

# === viz ===
from .viz import (
    plot_test_results,
    plot_sample_statistics,
)

__all__ = [
    # --- version ---
    "__version__",
    # --- errors ---
    "NetManipError",
    "ContractViolation",
    "DimensionMismatch",
    "MissingVariableError",
    "GroupConfigurationError",
    "InsufficientDataError",
    "UnknownProcedureError",
    # --- core ---
    "ORIGINAL_LABEL",
    "Network",
    "NetworkSample",
    "ManipulatedNetworkSet",
    "ManipulatedSampleSet",
    "StatisticSet",
    "SampleStatisticSet",
    "SampleVariableRef",
    "sample_var",
    "make_network",
    "make_sample",
    "load_network",
    "load_sample",
    # --- registry ---
    "ProcedureRegistry",
    "default_manipulations",
    "default_statistics",
    # --- manipulation ---
    "apply_manipulation",
    "remove_each_node",
    "remove_node_groups",
    "threshold_proportional",
    "random_edge_removal",
    # --- graph_analysis ---
    "total_weight",
    "density",
    "mean_strength",
    "global_efficiency",
    "characteristic_path_length",
    "weighted_clustering",
    "modularity",
    # --- statistic ---
    "apply_statistic",
    "compute_statistics",
    # --- inference ---
    "InferenceConfig",
    "diff_test",
    "group_test",
    "group_diff_test",
    "label_overlap",
    "adjust_p_values",
    # --- export ---
    "to_table",
    "to_dataframe",
    "results_to_dataframe",
    "export_table",
    # --- viz ---
    "plot_test_results",
    "plot_sample_statistics",
]
