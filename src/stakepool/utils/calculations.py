from typing import Dict, Iterable
import numpy as np
import pandas as pd


OPERATOR_COLUMNS = [
    "name",
    "operator_address",
    "active",
    "limit",
    "keys",
    "funded",
    "stopped",
]


# --- Core statistical helpers --- #
def herfindahl_hirschman_index(values: pd.Series) -> float:
    """HHI = sum of squared shares of the total (0-1 scale)."""
    values = pd.to_numeric(values.dropna(), errors="coerce").dropna()
    total = values.sum()
    if total <= 0:
        return 0.0
    return float(((values / total) ** 2).sum())


def gini_coefficient(values: pd.Series) -> float:
    values = pd.to_numeric(values.dropna(), errors="coerce").dropna()
    if len(values) < 2:
        return 0.0

    arr = values.values.astype(float)
    if arr.sum() <= 0:
        return 0.0

    sorted_vals = np.sort(arr)
    n = len(sorted_vals)
    index = np.arange(1, n + 1)

    numerator = np.sum(index * sorted_vals)
    denominator = n * sorted_vals.sum()

    return float((2 * numerator) / denominator - (n + 1) / n)


def top_n_percentage(values: pd.Series, n: int) -> float:
    values = pd.to_numeric(values.dropna(), errors="coerce").dropna()
    total = values.sum()
    if total <= 0:
        return 0.0
    return float(values.nlargest(n).sum() / total * 100.0)


def coefficient_of_variation(values: pd.Series) -> float:
    """CV = std / mean."""
    values = pd.to_numeric(values.dropna(), errors="coerce").dropna()
    if len(values) < 2:
        return 0.0
    mean = values.mean()
    if mean <= 0:
        return 0.0
    cv = values.std() / mean
    return float(cv) if np.isfinite(cv) else 0.0


# --- Operator frames --- #
def operators_frame(records: Iterable) -> pd.DataFrame:
    """
    DataFrame with one row per operator record plus derived columns:
    - active_validators: funded - stopped
    - capacity: min(keys, limit) - funded, floored at 0
    """
    df = pd.DataFrame([record.as_dict() for record in records], columns=OPERATOR_COLUMNS)
    if df.empty:
        df["active_validators"] = pd.Series(dtype="int64")
        df["capacity"] = pd.Series(dtype="int64")
        return df

    df["active_validators"] = (df["funded"] - df["stopped"]).clip(lower=0)
    df["capacity"] = (df[["keys", "limit"]].min(axis=1) - df["funded"]).clip(lower=0)
    return df


def compute_funding_concentration(df: pd.DataFrame, top_n: int = 5) -> Dict:
    """
    Concentration of funded slots (all operators) and of active
    validators (active operators only).
    """
    if df.empty:
        return {}

    active_df = df[df["active"]]
    funded_hhi = herfindahl_hirschman_index(df["funded"])

    return {
        "operator_count": int(len(df)),
        "fundable_operator_count": int(
            ((df["capacity"] > 0) & df["active"]).sum()
        ),
        "total_funded": int(df["funded"].sum()),
        "total_active_validators": int(active_df["active_validators"].sum()),
        "funded_hhi": funded_hhi,
        "funded_gini": gini_coefficient(df["funded"]),
        "funded_top_n_percentage": top_n_percentage(df["funded"], top_n),
        "funded_coefficient_of_variation": coefficient_of_variation(df["funded"]),
        "active_hhi": herfindahl_hirschman_index(active_df["active_validators"]),
        "effective_operators": 1 / funded_hhi if funded_hhi > 0 else float(len(df)),
    }
