from __future__ import annotations

import pandas as pd

from ..design import FactorialDesign

REQUIRED_COLUMNS = ("subject_id", "group", "time", "response")


def check_trial_data(data: pd.DataFrame, design: FactorialDesign) -> None:
    """
    Validate an observation table against the design.

    Raises
    ------
    ``ValueError``
        If a required column is missing, a subject, group or time label is
        missing, a group or time level is unknown to the design, or no
        response is observed.
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in data.columns]
    if missing:
        raise ValueError(
            f"Trial data is missing column(s) {missing}. "
            f"Required: {list(REQUIRED_COLUMNS)}"
        )
    for col in ("subject_id", "group", "time"):
        n_missing = int(data[col].isna().sum())
        if n_missing:
            raise ValueError(
                f"Column '{col}' has {n_missing} missing value(s). "
                "Only the response may be missing."
            )
    for label, col, levels in [("Group", "group", design.groups), ("Time", "time", design.times)]:
        unknown = sorted(set(data[col].astype(str)) - set(levels))
        if unknown:
            raise ValueError(
                f"{label} column '{col}' has levels not in the design: {unknown}. "
                f"Known levels: {levels}"
            )
    if data["response"].notna().sum() == 0:
        raise ValueError("Trial data has no observed responses.")
