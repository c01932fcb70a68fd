# -*- coding: utf-8 -*-
"""
netmanip.inference
==================================================

Hypothesis tests on manipulated-network statistics.

Every test works label by label on a SampleStatisticSet and returns a
result table (dict of columns) with one row per manipulation label, in
order of the label's first appearance:

    diff_test
        Paired: derived − original, one-sample test against zero.
        Does the manipulation change the statistic?
    group_test
        Unpaired: derived values of group 1 vs group 2.
        Does the manipulated-network statistic differ between groups?
    group_diff_test
        Unpaired: (derived − original) of group 1 vs group 2.
        Does the *effect* of the manipulation differ between groups?

Subjects that lack a label, or whose value is not finite, are excluded
from that label's comparison only.  A label left with fewer than 2
usable values in a required group raises InsufficientDataError.

Test family and multiple-comparison correction are chosen through
:class:`InferenceConfig`:

    method      'parametric' (t-tests) or 'rank' (Wilcoxon /
                Mann-Whitney U)
    correction  'none', 'bonferroni' or 'fdr' (Benjamini-Hochberg),
                applied across the labels of one call

References
----------
- Student (1908). Biometrika 6:1-25.
- Welch (1947). Biometrika 34:28-35.
- Wilcoxon (1945). Biometrics Bulletin 1:80-83.
- Mann & Whitney (1947). Ann Math Stat 18:50-60.
- Benjamini & Hochberg (1995). J R Stat Soc B 57:289-300.
"""

import numpy as np
from scipy import stats
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass

from .core import SampleStatisticSet
from .errors import (
    ContractViolation,
    GroupConfigurationError,
    InsufficientDataError,
)


METHODS = ("parametric", "rank")
CORRECTIONS = ("none", "bonferroni", "fdr")


@dataclass
class InferenceConfig:
    """
    Configuration for the label-wise tests.

    Parameters
    ----------
    method : str
        'parametric' (default): one-sample / independent t-test.
        'rank': Wilcoxon signed-rank / Mann-Whitney U.
    correction : str
        'none' (default), 'bonferroni' or 'fdr'.  The raw p-values are
        always reported; the corrected ones go to ``p_adjusted``.
    alpha : float
        Threshold applied to ``p_adjusted`` for the ``significant``
        column.
    equal_var : bool
        Pooled-variance t-test if True, Welch's test if False.
        Ignored by the rank method.
    require_common_labels : bool
        If True, every subject must carry the same label set; a missing
        label raises ContractViolation instead of being excluded.
    """
    method: str = "parametric"
    correction: str = "none"
    alpha: float = 0.05
    equal_var: bool = True
    require_common_labels: bool = False

    def __post_init__(self):
        if self.method not in METHODS:
            raise ValueError(
                f"method must be one of {METHODS}, got '{self.method}'"
            )
        if self.correction not in CORRECTIONS:
            raise ValueError(
                f"correction must be one of {CORRECTIONS}, "
                f"got '{self.correction}'"
            )
        if not 0 < self.alpha < 1:
            raise ValueError(f"alpha must be in (0, 1), got {self.alpha}")


# =============================================================================
# TESTS
# =============================================================================

def diff_test(
    sample_statistics: SampleStatisticSet,
    config: Optional[InferenceConfig] = None,
    verbose: bool = True,
) -> Dict:
    """
    Paired test of derived versus original statistic, per label.

    For each label, collect derived − original across the subjects that
    carry the label and test the mean (or median, for 'rank') against
    zero, two-sided.

    Parameters
    ----------
    sample_statistics : SampleStatisticSet
    config : InferenceConfig, optional
    verbose : bool

    Returns
    -------
    dict
        'label' : list of str
        'statistic' : np.ndarray — t or Wilcoxon W
        'df' : np.ndarray — n − 1 (NaN for 'rank')
        'p_value' : np.ndarray — two-sided, uncorrected
        'p_adjusted' : np.ndarray — after ``config.correction``
        'significant' : np.ndarray bool — p_adjusted < alpha
        'n' : np.ndarray int — subjects used
        'estimate' : np.ndarray — mean difference
        'test', 'method', 'correction' : str

    Raises
    ------
    InsufficientDataError
        If a label has fewer than 2 usable differences.
    """
    config = config or InferenceConfig()
    labels = _check_labels(sample_statistics, config)

    if verbose:
        print(f"  Difference test: {len(labels)} labels, "
              f"{sample_statistics.n_subjects} subjects ({config.method})")

    rows = []
    for label in labels:
        d = _paired_differences(sample_statistics, label)
        _require(len(d), label, "differences")
        stat, p, df = _one_sample(d, config)
        rows.append({
            "label": label, "statistic": stat, "df": df, "p_value": p,
            "n": len(d), "estimate": float(d.mean()),
        })

    result = _assemble(rows, config, test="diff", count_columns=("n",))
    if verbose:
        _print_rows(result)
    return result


def group_test(
    sample_statistics: SampleStatisticSet,
    grouping_variable: str,
    config: Optional[InferenceConfig] = None,
    verbose: bool = True,
) -> Dict:
    """
    Unpaired comparison of derived statistic values between two groups.

    Parameters
    ----------
    sample_statistics : SampleStatisticSet
    grouping_variable : str
        Sample variable with exactly two distinct values.
    config : InferenceConfig, optional
    verbose : bool

    Returns
    -------
    dict
        Same columns as :func:`diff_test`, with 'n1' / 'n2' instead of
        'n', 'estimate' = mean(group 1) − mean(group 2), and 'groups'
        holding the two group values (group 1 first, in order of first
        appearance).

    Raises
    ------
    GroupConfigurationError
        If the grouping variable does not have exactly two values.
    InsufficientDataError
        If either group has fewer than 2 usable values for a label.
    """
    return _two_group_test(
        sample_statistics, grouping_variable, config, verbose,
        use_differences=False,
    )


def group_diff_test(
    sample_statistics: SampleStatisticSet,
    grouping_variable: str,
    config: Optional[InferenceConfig] = None,
    verbose: bool = True,
) -> Dict:
    """
    Group × manipulation interaction test.

    For each label, compute derived − original per subject and compare
    these differences between the two groups with an unpaired test.

    Parameters and return value as for :func:`group_test`.
    """
    return _two_group_test(
        sample_statistics, grouping_variable, config, verbose,
        use_differences=True,
    )


def _two_group_test(
    sample_statistics: SampleStatisticSet,
    grouping_variable: str,
    config: Optional[InferenceConfig],
    verbose: bool,
    use_differences: bool,
) -> Dict:
    config = config or InferenceConfig()
    labels = _check_labels(sample_statistics, config)
    groups, membership = _grouping(sample_statistics, grouping_variable)
    test = "group_diff" if use_differences else "group"

    if verbose:
        name = "Group-difference test" if use_differences else "Group test"
        n1 = int((membership == 0).sum())
        n2 = int((membership == 1).sum())
        print(f"  {name}: {len(labels)} labels, "
              f"{groups[0]} (n={n1}) vs {groups[1]} (n={n2}) "
              f"({config.method})")

    rows = []
    for label in labels:
        x1, x2 = _split_by_group(
            sample_statistics, label, membership, use_differences,
        )
        _require(len(x1), label, f"values in group '{groups[0]}'")
        _require(len(x2), label, f"values in group '{groups[1]}'")
        stat, p, df = _two_sample(x1, x2, config)
        rows.append({
            "label": label, "statistic": stat, "df": df, "p_value": p,
            "n1": len(x1), "n2": len(x2),
            "estimate": float(x1.mean() - x2.mean()),
        })

    result = _assemble(rows, config, test=test, count_columns=("n1", "n2"))
    result["groups"] = groups
    result["grouping_variable"] = grouping_variable
    if verbose:
        _print_rows(result)
    return result


def label_overlap(sample_statistics: SampleStatisticSet) -> Dict:
    """
    How many subjects carry each label.

    Sample-level manipulations (e.g. removing each community of a
    subject-specific partition) can produce different label sets per
    subject.  Use this to check there is enough overlap before testing.

    Returns
    -------
    dict
        'label' : list of str (first-appearance order)
        'n_subjects' : np.ndarray int
        'fraction' : np.ndarray — n_subjects / total subjects
        'missing' : list of list of str — subject ids lacking the label
    """
    labels = sample_statistics.labels
    counts = sample_statistics.label_counts()
    total = max(1, sample_statistics.n_subjects)
    missing = [
        [sid for sid, s in zip(sample_statistics.subject_ids,
                               sample_statistics.sets)
         if label not in s.values]
        for label in labels
    ]
    n_subjects = np.array([counts[label] for label in labels], dtype=int)
    return {
        "label": labels,
        "n_subjects": n_subjects,
        "fraction": n_subjects / total,
        "missing": missing,
    }


# =============================================================================
# DATA SHAPING
# =============================================================================

def _check_labels(
    sample_statistics: SampleStatisticSet, config: InferenceConfig,
) -> List[str]:
    if not isinstance(sample_statistics, SampleStatisticSet):
        raise TypeError(
            f"Expected SampleStatisticSet, got "
            f"{type(sample_statistics).__name__}"
        )
    labels = sample_statistics.labels
    if not labels:
        raise InsufficientDataError("No manipulation labels to test")

    if config.require_common_labels:
        for sid, s in zip(sample_statistics.subject_ids,
                          sample_statistics.sets):
            for label in labels:
                if label not in s.values:
                    raise ContractViolation(
                        f"Subject '{sid}' lacks label '{label}' "
                        f"(require_common_labels=True)",
                        label=label,
                    )
    return labels


def _paired_differences(
    sample_statistics: SampleStatisticSet, label: str,
) -> np.ndarray:
    d = [
        s.values[label] - s.original
        for s in sample_statistics.sets if label in s.values
    ]
    d = np.asarray(d, dtype=float)
    return d[np.isfinite(d)]


def _is_missing(value) -> bool:
    if value is None:
        return True
    try:
        return bool(np.isnan(value))
    except TypeError:
        return False


def _grouping(
    sample_statistics: SampleStatisticSet, variable: str,
) -> Tuple[Tuple, np.ndarray]:
    """Two group values (first-appearance order) and 0/1/-1 membership."""
    values = sample_statistics.sample_variable(variable)
    groups = []
    membership = np.full(len(values), -1, dtype=int)
    for i, v in enumerate(values):
        if _is_missing(v):
            continue
        v = v.item() if isinstance(v, np.generic) else v
        if v not in groups:
            groups.append(v)
        if len(groups) <= 2:
            membership[i] = groups.index(v)

    if len(groups) != 2:
        raise GroupConfigurationError(
            f"Grouping variable '{variable}' must have exactly 2 distinct "
            f"values, found {len(groups)}: {groups}",
            name=variable,
        )
    return tuple(groups), membership


def _split_by_group(
    sample_statistics: SampleStatisticSet,
    label: str,
    membership: np.ndarray,
    use_differences: bool,
) -> Tuple[np.ndarray, np.ndarray]:
    by_group = ([], [])
    for s, g in zip(sample_statistics.sets, membership):
        if g < 0 or label not in s.values:
            continue
        value = s.values[label]
        if use_differences:
            value = value - s.original
        if np.isfinite(value):
            by_group[g].append(value)
    return (np.asarray(by_group[0], dtype=float),
            np.asarray(by_group[1], dtype=float))


def _require(n: int, label: str, what: str) -> None:
    if n < 2:
        raise InsufficientDataError(
            f"Label '{label}': only {n} usable {what}, need at least 2",
            label=label,
        )


# =============================================================================
# TEST STATISTICS
# =============================================================================

def _one_sample(d: np.ndarray, config: InferenceConfig):
    """Two-sided location test of ``d`` against zero → (stat, p, df)."""
    if config.method == "rank":
        if np.all(d == 0):
            return np.nan, np.nan, np.nan
        res = stats.wilcoxon(d, alternative="two-sided")
        return float(res.statistic), float(res.pvalue), np.nan

    res = stats.ttest_1samp(d, 0.0)
    return float(res.statistic), float(res.pvalue), float(len(d) - 1)


def _two_sample(x1: np.ndarray, x2: np.ndarray, config: InferenceConfig):
    """Two-sided two-sample location test → (stat, p, df)."""
    if config.method == "rank":
        res = stats.mannwhitneyu(x1, x2, alternative="two-sided")
        return float(res.statistic), float(res.pvalue), np.nan

    res = stats.ttest_ind(x1, x2, equal_var=config.equal_var)
    n1, n2 = len(x1), len(x2)
    if config.equal_var:
        df = float(n1 + n2 - 2)
    else:
        v1 = x1.var(ddof=1) / n1
        v2 = x2.var(ddof=1) / n2
        denom = v1 ** 2 / (n1 - 1) + v2 ** 2 / (n2 - 1)
        df = float((v1 + v2) ** 2 / denom) if denom > 0 else np.nan
    return float(res.statistic), float(res.pvalue), df


# =============================================================================
# MULTIPLE COMPARISONS
# =============================================================================

def adjust_p_values(p_values: np.ndarray, correction: str = "fdr") -> np.ndarray:
    """
    Multiple-comparison correction across a vector of p-values.

    NaN p-values are passed through and do not count as tests.

    Parameters
    ----------
    p_values : np.ndarray
    correction : str
        'none', 'bonferroni' or 'fdr' (Benjamini-Hochberg).
    """
    if correction not in CORRECTIONS:
        raise ValueError(
            f"correction must be one of {CORRECTIONS}, got '{correction}'"
        )
    p = np.asarray(p_values, dtype=float)
    adjusted = p.copy()
    valid = np.isfinite(p)
    n_tests = int(valid.sum())
    if correction == "none" or n_tests == 0:
        return adjusted

    if correction == "bonferroni":
        adjusted[valid] = np.minimum(p[valid] * n_tests, 1.0)
    else:
        adjusted[valid] = _fdr_correction(p[valid])
    return adjusted


def _fdr_correction(p_vals: np.ndarray) -> np.ndarray:
    """Benjamini-Hochberg step-up adjustment."""
    n_tests = len(p_vals)
    sorted_idx = np.argsort(p_vals)
    sorted_p = p_vals[sorted_idx]

    adjusted = np.zeros(n_tests)
    for i in range(n_tests - 1, -1, -1):
        if i == n_tests - 1:
            adjusted[i] = sorted_p[i]
        else:
            adjusted[i] = min(
                adjusted[i + 1],
                sorted_p[i] * n_tests / (i + 1),
            )
    adjusted = np.minimum(adjusted, 1.0)

    out = np.zeros(n_tests)
    out[sorted_idx] = adjusted
    return out


# =============================================================================
# RESULT TABLE
# =============================================================================

def _assemble(rows: List[Dict], config: InferenceConfig, test: str,
              count_columns: Tuple[str, ...]) -> Dict:
    p_values = np.array([r["p_value"] for r in rows], dtype=float)
    p_adjusted = adjust_p_values(p_values, config.correction)
    with np.errstate(invalid="ignore"):
        significant = np.nan_to_num(p_adjusted, nan=1.0) < config.alpha

    result = {
        "label": [r["label"] for r in rows],
        "statistic": np.array([r["statistic"] for r in rows], dtype=float),
        "df": np.array([r["df"] for r in rows], dtype=float),
        "p_value": p_values,
        "p_adjusted": p_adjusted,
        "significant": significant,
    }
    for col in count_columns:
        result[col] = np.array([r[col] for r in rows], dtype=int)
    result["estimate"] = np.array([r["estimate"] for r in rows], dtype=float)
    result["test"] = test
    result["method"] = config.method
    result["correction"] = config.correction
    result["alpha"] = config.alpha
    return result


def _print_rows(result: Dict) -> None:
    for label, stat, p in zip(result["label"], result["statistic"],
                              result["p_adjusted"]):
        sig = "***" if p < 0.001 else ("**" if p < 0.01
               else ("*" if p < 0.05 else ""))
        print(f"    {label}: stat = {stat:.3f}, p = {p:.4f} {sig}")
