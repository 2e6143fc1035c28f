import numpy as np
import pandas as pd
from pandas.errors import MergeError

from geochoropleth.errors import InvalidInputError, MissingAttributeError


def _key_columns(on, left_on, right_on):
    if on is not None:
        if left_on is not None or right_on is not None:
            raise InvalidInputError(
                "Specify either 'on' or 'left_on' and 'right_on', not both."
            )
        return on, on
    if left_on is None or right_on is None:
        raise InvalidInputError("Both 'left_on' and 'right_on' are required.")
    return left_on, right_on


def _is_numeric(keys):
    return pd.api.types.is_numeric_dtype(keys.dtype) and not (
        pd.api.types.is_bool_dtype(keys.dtype)
    )


def _as_text(keys):
    # 10004.0 is written as "10004" so that float keys match text keys
    if pd.api.types.is_float_dtype(keys.dtype):
        present = keys.dropna()
        if np.isfinite(present).all() and (present == np.floor(present)).all():
            keys = keys.astype("Int64")
    return keys.astype(str).where(keys.notna())


def _comparable_keys(left, right):
    """Key values of both sides, converted so that equal keys compare equal."""
    if left.dtype == right.dtype:
        return left, right
    if _is_numeric(left) and _is_numeric(right):
        return left.astype(float), right.astype(float)
    return _as_text(left), _as_text(right)


def join_attributes(features, table, on=None, left_on=None, right_on=None, how="left"):
    """
    Attach the columns of an attribute table to features.

    Typical use is joining case rates keyed by ZIP code onto ZIP code
    polygons. Numeric keys of different dtypes are compared as numbers, so
    integer ZIP codes match a float column read from a CSV file with blank
    cells. Otherwise keys of different dtypes are compared as strings, so a
    numeric ZIP column matches a text one.

    Parameters
    ----------
    features : GeoDataFrame
    table : pandas.DataFrame
        One row per key.
    on : str, optional
        Key column present in both.
    left_on, right_on : str, optional
        Key columns of ``features`` and ``table`` respectively.
    how : {"left", "inner"} (default "left")
        With "left" every feature is kept, unmatched ones get missing
        values; with "inner" only matched features are kept.

    Returns
    -------
    GeoDataFrame
        A new frame, in the order and CRS of ``features``. The key column
        of ``features`` is kept unchanged, the one of ``table`` is dropped.
    """
    if how not in ("left", "inner"):
        raise InvalidInputError(f"'how' must be 'left' or 'inner', got '{how}'")

    left_key, right_key = _key_columns(on, left_on, right_on)
    if left_key not in features.columns:
        raise MissingAttributeError(f"features have no column '{left_key}'")
    if right_key not in table.columns:
        raise MissingAttributeError(f"table has no column '{right_key}'")

    left_keys, right_keys = _comparable_keys(features[left_key], table[right_key])

    features = features.copy()
    features["__row__"] = range(len(features))
    features["__key__"] = left_keys.to_numpy()

    # geometry column of the table, if any, must not replace ours
    table = pd.DataFrame(table).drop(columns=right_key)
    geometry_name = features.geometry.name
    if geometry_name in table.columns:
        table = table.drop(columns=geometry_name)
    table["__key__"] = right_keys.to_numpy()
    table = table[table["__key__"].notna()]

    try:
        joined = features.merge(
            table,
            how=how,
            on="__key__",
            validate="many_to_one",
            suffixes=("", "_joined"),
        )
    except MergeError as err:
        raise InvalidInputError(f"duplicated keys in the attribute table: {err}")

    joined.index = features.index[joined["__row__"].to_numpy()]
    return joined.drop(columns=["__row__", "__key__"])
