# -*- coding: utf-8 -*-
"""
netmanip.export
==================================================

Long-format tables for downstream analysis and plotting.

StatisticSet rows::

    label       value
    original    6.0
    1           4.0
    ...

SampleStatisticSet rows (one per subject × label)::

    subject   label  value  original  difference  <sample variables...>

Functions
---------
to_table
    List of row dicts.
to_dataframe
    Same rows as a pandas DataFrame.
results_to_dataframe
    Testing-module result table as a DataFrame.
export_table
    Write any of the above to a tab-separated file.
"""

import numpy as np
import pandas as pd
from pathlib import Path
from typing import Dict, List, Union

from .core import ORIGINAL_LABEL, StatisticSet, SampleStatisticSet


_SAMPLE_COLUMNS = ("subject", "label", "value", "original", "difference")


def to_table(statistics: Union[StatisticSet, SampleStatisticSet]) -> List[Dict]:
    """
    Flatten a StatisticSet or SampleStatisticSet into long-format rows.

    For a StatisticSet: one ``{'label', 'value'}`` row for the original
    (label ``'original'``) followed by one row per label.

    For a SampleStatisticSet: one row per (subject, label) with columns
    'subject', 'label', 'value', 'original', 'difference', then each
    sample variable.  Subjects with different label sets contribute
    different numbers of rows.
    """
    if isinstance(statistics, StatisticSet):
        rows = [{"label": ORIGINAL_LABEL, "value": statistics.original}]
        rows.extend(
            {"label": label, "value": value}
            for label, value in statistics.values.items()
        )
        return rows

    if isinstance(statistics, SampleStatisticSet):
        clash = set(statistics.sample_variables) & set(_SAMPLE_COLUMNS)
        if clash:
            raise ValueError(
                f"Sample variables {sorted(clash)} collide with table columns"
            )
        rows = []
        for i, (sid, s) in enumerate(zip(statistics.subject_ids,
                                         statistics.sets)):
            extra = {
                name: _plain(values[i])
                for name, values in statistics.sample_variables.items()
            }
            for label, value in s.values.items():
                rows.append({
                    "subject": sid,
                    "label": label,
                    "value": value,
                    "original": s.original,
                    "difference": value - s.original,
                    **extra,
                })
        return rows

    raise TypeError(
        f"Cannot tabulate {type(statistics).__name__}; expected "
        f"StatisticSet or SampleStatisticSet"
    )


def _plain(value):
    return value.item() if isinstance(value, np.generic) else value


def _columns(statistics) -> List[str]:
    if isinstance(statistics, StatisticSet):
        return ["label", "value"]
    return list(_SAMPLE_COLUMNS) + list(statistics.sample_variables)


def to_dataframe(
    statistics: Union[StatisticSet, SampleStatisticSet],
) -> pd.DataFrame:
    """Rows of :func:`to_table` as a DataFrame (columns kept when empty)."""
    return pd.DataFrame(to_table(statistics), columns=_columns(statistics))


def results_to_dataframe(result: Dict) -> pd.DataFrame:
    """
    Turn a result of diff_test / group_test / group_diff_test into a
    DataFrame with one row per label.  Scalar entries (method,
    correction, …) are stored in ``DataFrame.attrs``.
    """
    n = len(result["label"])
    columns = {}
    attrs = {}
    for key, value in result.items():
        if key == "groups":
            attrs[key] = list(value)
        elif isinstance(value, (list, np.ndarray)) and len(value) == n:
            columns[key] = value
        else:
            attrs[key] = value
    df = pd.DataFrame(columns)
    df.attrs.update(attrs)
    return df


def export_table(
    data: Union[StatisticSet, SampleStatisticSet, Dict, pd.DataFrame],
    filepath: Union[str, Path],
) -> str:
    """
    Write a statistic set, a test result, or a DataFrame as TSV.

    Returns
    -------
    str
        The output path.
    """
    if isinstance(data, (StatisticSet, SampleStatisticSet)):
        df = to_dataframe(data)
    elif isinstance(data, dict):
        df = results_to_dataframe(data)
    elif isinstance(data, pd.DataFrame):
        df = data
    else:
        raise TypeError(f"Cannot export {type(data).__name__}")

    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(filepath, sep="\t", index=False)
    return str(filepath)
