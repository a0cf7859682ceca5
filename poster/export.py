"""
Export utilities for run history.
"""
from typing import Dict, List

import pandas as pd

HISTORY_COLUMNS = [
    "row_number",
    "item_name",
    "status",
    "listing_url",
    "error",
    "method",
    "finished_at",
]


def history_frame(history: List[Dict]) -> pd.DataFrame:
    """Run history as a DataFrame with a stable column order."""
    if not history:
        return pd.DataFrame(columns=HISTORY_COLUMNS)
    df = pd.DataFrame(history)
    for col in HISTORY_COLUMNS:
        if col not in df.columns:
            df[col] = None
    return df[HISTORY_COLUMNS]


def save_run_report(history: List[Dict], out_path: str, logger=None) -> int:
    """Save run history to CSV or Excel file."""
    df = history_frame(history)
    if out_path.lower().endswith(".xlsx"):
        df.to_excel(out_path, index=False)
    else:
        df.to_csv(out_path, index=False)

    if logger:
        logger.info(f">>> Saved {len(df)} rows to {out_path}")
    return len(df)
