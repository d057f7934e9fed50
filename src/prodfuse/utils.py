from typing import Any, Dict, List
import math
import pandas as pd


def normalize_text(val: Any) -> str:
    """Normalize a text field: strip, collapse whitespace."""
    if val is None:
        return ""
    if not isinstance(val, str):
        val = str(val)
    return " ".join(val.strip().split())


def is_missing(val: Any) -> bool:
    if val is None:
        return True
    # pandas may give NaN as float
    if isinstance(val, float) and math.isnan(val):
        return True
    if isinstance(val, str) and val.strip() == "":
        return True
    return False


def coerce_value(val: Any) -> Any:
    """Turn a CSV cell into a candidate value.

    Numeric-looking strings become int/float so the numeric tolerance applies;
    everything else is returned as normalized text. Missing cells become None.
    """
    if is_missing(val):
        return None
    if isinstance(val, (int, float)) and not isinstance(val, bool):
        return val
    text = normalize_text(val)
    digits = text.lstrip("+-")
    if len(digits) > 1 and digits.startswith("0") and not digits.startswith("0."):
        # codes like EAN or SKU keep their leading zeros
        return text
    num = pd.to_numeric(text, errors="coerce")
    if pd.isna(num):
        return text
    if float(num).is_integer() and "." not in text and "e" not in text.lower():
        return int(num)
    return float(num)


def read_csv(path: str) -> pd.DataFrame:
    # keep every cell as text; coerce_value decides what is numeric
    return pd.read_csv(path, dtype=str, keep_default_na=False)


def save_csv(df: pd.DataFrame, path: str) -> None:
    df.to_csv(path, index=False)


def rows_from_df(df: pd.DataFrame) -> List[Dict[str, Any]]:
    # Convert NaN/NA values to empty strings so downstream logic treats them as missing
    clean = df.fillna("")
    return clean.to_dict(orient="records")
