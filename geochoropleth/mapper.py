"""
Attribute-to-color mapping for choropleth maps.

The functions in this module are pure: they never read files, never touch
matplotlib state and never modify the features they are given.
"""
from bisect import bisect_left
from collections import namedtuple
import math
import numbers
import warnings

import numpy as np
import pandas as pd
from packaging.version import Version

from geochoropleth.errors import (
    ChoroplethError,
    DivisionError,
    InvalidInputError,
    MissingAttributeError,
)


QUANTILE = "quantile"
EQUAL_INTERVAL = "equal-interval"
NATURAL_BREAKS = "natural-breaks"

SCHEMES = (QUANTILE, EQUAL_INTERVAL, NATURAL_BREAKS)

_SCHEME_ALIASES = {
    "quantile": QUANTILE,
    "quantiles": QUANTILE,
    "equal-interval": EQUAL_INTERVAL,
    "equalinterval": EQUAL_INTERVAL,
    "natural-breaks": NATURAL_BREAKS,
    "naturalbreaks": NATURAL_BREAKS,
    "jenks": NATURAL_BREAKS,
    "fisher-jenks": NATURAL_BREAKS,
    "fisherjenks": NATURAL_BREAKS,
}


def _is_number(value):
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _is_nan(value):
    # integers are never NaN and may be too large for math.isnan
    return not isinstance(value, numbers.Integral) and math.isnan(value)


def _is_missing(value):
    if value is None or value is pd.NA:
        return True
    return _is_number(value) and _is_nan(value)


def _get_attribute(feature, attr):
    try:
        return feature[attr]
    except (KeyError, IndexError):
        raise MissingAttributeError(f"attribute '{attr}' is missing")


def normalize(feature, numerator_attr, denominator_attr, scale_factor):
    """
    Normalize an attribute of a feature by another one.

    Computes ``numerator / (denominator / scale_factor)``, e.g. a population
    per square kilometre from a population count and an area in square
    metres with ``scale_factor=1_000_000``.

    Parameters
    ----------
    feature : mapping
        Anything supporting ``feature[name]``: a dict, or a row of a
        GeoDataFrame.
    numerator_attr, denominator_attr : str
        Names of the attributes to divide.
    scale_factor : float
        Positive factor the denominator is divided by first.

    Returns
    -------
    float

    Raises
    ------
    MissingAttributeError
        If one of the attributes is absent.
    DivisionError
        If the denominator is zero or missing.
    InvalidInputError
        If a value is not numeric or ``scale_factor`` is not positive.

    Examples
    --------
    >>> normalize({"pop17": 5000, "AREA": 2_000_000}, "pop17", "AREA", 1_000_000)
    2500.0
    """
    if not _is_number(scale_factor) or not (
        (isinstance(scale_factor, numbers.Integral) or math.isfinite(scale_factor))
        and scale_factor > 0
    ):
        raise InvalidInputError(
            f"scale_factor must be a positive number, got {scale_factor!r}"
        )

    numerator = _get_attribute(feature, numerator_attr)
    denominator = _get_attribute(feature, denominator_attr)

    if _is_missing(denominator):
        raise DivisionError(f"denominator '{denominator_attr}' is missing")
    if not _is_number(denominator):
        raise InvalidInputError(
            f"denominator '{denominator_attr}' is not numeric: {denominator!r}"
        )
    if denominator == 0:
        raise DivisionError(f"denominator '{denominator_attr}' is zero")

    if _is_missing(numerator):
        raise InvalidInputError(f"numerator '{numerator_attr}' is missing")
    if not _is_number(numerator):
        raise InvalidInputError(
            f"numerator '{numerator_attr}' is not numeric: {numerator!r}"
        )

    try:
        return float(numerator) / (float(denominator) / float(scale_factor))
    except OverflowError:
        raise InvalidInputError(
            f"'{numerator_attr}' or '{denominator_attr}' is too large for a float"
        )


def _scheme_name(scheme):
    if not isinstance(scheme, str):
        raise InvalidInputError(f"scheme must be a string, got {scheme!r}")
    key = scheme.strip().lower().replace("_", "-").replace(" ", "-")
    try:
        return _SCHEME_ALIASES[key]
    except KeyError:
        raise InvalidInputError(
            f"Invalid scheme '{scheme}'. Scheme must be one of {list(SCHEMES)}"
        )


def _upper_bounds(y, scheme, k):
    """Upper bounds of the classes as computed by mapclassify."""
    mc_err = (
        "The 'mapclassify' package (>= 2.5.0) is "
        "required to classify values."
    )
    try:
        import mapclassify
    except ImportError:
        raise ImportError(mc_err)

    if Version(mapclassify.__version__) < Version("2.5.0"):
        raise ImportError(mc_err)

    if scheme == QUANTILE:
        classifier = mapclassify.Quantiles(y, k=k)
    elif scheme == EQUAL_INTERVAL:
        classifier = mapclassify.EqualInterval(y, k=k)
    else:
        # Fisher-Jenks gives the exact Jenks optimum and refuses more classes
        # than distinct values.
        classifier = mapclassify.FisherJenks(y, k=min(k, len(np.unique(y))))
    return np.asarray(classifier.bins, dtype=float)


def classify(values, scheme, num_classes):
    """
    Partition the range of ``values`` into ``num_classes`` contiguous bins.

    Parameters
    ----------
    values : sequence of float
        The values to classify. Must be non-empty and finite.
    scheme : str
        ``"quantile"``, ``"equal-interval"`` or ``"natural-breaks"`` (Jenks).
        Case and ``_``/``-`` are ignored; ``"jenks"`` and ``"quantiles"`` are
        accepted as well. There is no default.
    num_classes : int
        Number of bins, at least 1.

    Returns
    -------
    list of (lower, upper) tuples
        Exactly ``num_classes`` bins. The first lower bound is ``min(values)``,
        the last upper bound ``max(values)`` and each upper bound is the
        lower bound of the next bin. If there are fewer distinct values than
        classes, the surplus bins collapse to ``(max, max)``.

    Examples
    --------
    >>> classify([10, 20, 30, 100], "equal-interval", 2)
    [(10.0, 55.0), (55.0, 100.0)]
    """
    name = _scheme_name(scheme)
    if (
        not isinstance(num_classes, numbers.Integral)
        or isinstance(num_classes, bool)
        or num_classes < 1
    ):
        raise InvalidInputError(
            f"num_classes must be an integer >= 1, got {num_classes!r}"
        )
    k = int(num_classes)

    try:
        y = np.asarray(values, dtype=float).ravel()
    except OverflowError:
        raise InvalidInputError("values must be finite")
    except (TypeError, ValueError):
        raise InvalidInputError("values must be numeric")
    if y.size == 0:
        raise InvalidInputError("cannot classify an empty set of values")
    if not np.isfinite(y).all():
        raise InvalidInputError("values must be finite")

    lowest, highest = float(y.min()), float(y.max())
    if k == 1 or lowest == highest:
        uppers = np.full(k, highest)
    else:
        with warnings.catch_warnings():
            # mapclassify warns when quantiles collapse; the padding below
            # handles that case.
            warnings.filterwarnings("ignore", message="Not enough unique values")
            uppers = _upper_bounds(y, name, k)
        if len(uppers) < k:
            uppers = np.concatenate([uppers, np.full(k - len(uppers), highest)])
        uppers = uppers[:k]

    uppers[-1] = highest
    uppers = np.maximum.accumulate(np.clip(uppers, lowest, highest))
    edges = [lowest] + [float(u) for u in uppers]
    return [(edges[i], edges[i + 1]) for i in range(k)]


def find_bin(value, bins):
    """
    Index of the bin containing ``value``.

    A bin includes its upper bound; the first bin also includes its lower
    bound. Values outside all bins are clamped to the first or last bin.
    """
    if len(bins) == 0:
        raise InvalidInputError("bins must not be empty")
    if not _is_number(value) or _is_nan(value):
        raise InvalidInputError(f"cannot find the bin of {value!r}")
    uppers = [upper for _, upper in bins]
    return min(bisect_left(uppers, value), len(bins) - 1)


def _palette_index(bin_index, n_bins, n_colors):
    if n_colors == n_bins or n_bins == 1:
        return min(bin_index, n_colors - 1)
    return int(round(bin_index * (n_colors - 1) / (n_bins - 1)))


def colorize(value, bins, palette):
    """
    Color of the bin containing ``value``.

    Values below the first bin get the first color and values above the last
    bin get the last color. If the palette does not have one color per bin,
    the bin index is spread evenly over the palette.

    Examples
    --------
    >>> colorize(30, [(10, 55), (55, 100)], ["red", "blue"])
    'red'
    """
    palette = list(palette)
    if len(palette) == 0:
        raise InvalidInputError("palette must not be empty")
    index = find_bin(value, bins)
    return palette[_palette_index(index, len(bins), len(palette))]


def class_colors(bins, palette):
    """The color :func:`colorize` assigns to each bin, in bin order."""
    palette = list(palette)
    if len(palette) == 0:
        raise InvalidInputError("palette must not be empty")
    return [palette[_palette_index(i, len(bins), len(palette))] for i in range(len(bins))]


class ClassificationScheme(namedtuple("ClassificationScheme", "scheme k bins yb")):
    """
    Result of classifying a column of a feature collection.

    Attributes
    ----------
    scheme : str
        Canonical name of the classification scheme.
    k : int
        Number of classes.
    bins : list of (lower, upper)
        The class bounds.
    yb : numpy.ndarray
        Class index of every feature, ``-1`` for missing values.
    """

    @property
    def edges(self):
        """The ``k + 1`` class boundaries."""
        return [self.bins[0][0]] + [upper for _, upper in self.bins]

    @property
    def counts(self):
        """Number of features in each class."""
        yb = np.asarray(self.yb)
        return [int((yb == i).sum()) for i in range(self.k)]


ChoroplethResult = namedtuple("ChoroplethResult", "values classification colors")


def attribute_values(features, column):
    """Values of ``column`` as floats, with missing values as NaN."""
    if column not in features.columns:
        raise MissingAttributeError(f"attribute '{column}' is missing")
    values = features[column]
    if not (
        pd.api.types.is_numeric_dtype(values.dtype)
        and not pd.api.types.is_bool_dtype(values.dtype)
    ):
        try:
            values = pd.to_numeric(values)
        except (TypeError, ValueError):
            raise InvalidInputError(f"attribute '{column}' is not numeric")
    return values.astype(float)


def normalize_features(features, numerator, denominator=None, scale_factor=1.0):
    """
    Apply :func:`normalize` to every feature of a collection.

    Parameters
    ----------
    features : GeoDataFrame
    numerator : str
        Column holding the quantity, e.g. a population count.
    denominator : str, optional
        Column to divide by. If None, the geometry area in CRS units is
        used, which requires a projected CRS.
    scale_factor : float (default 1.0)

    Returns
    -------
    pandas.Series
        Float values with the index of ``features``.

    Raises
    ------
    ChoroplethError
        The error of the first failing feature, with its position in
        ``index``.
    """
    if denominator is None:
        if features.crs is None or not features.crs.is_projected:
            raise InvalidInputError(
                "normalizing by area requires a projected CRS; "
                "reproject the features first with `to_crs()`"
            )
        features = features.assign(__area__=features.geometry.area)
        denominator = "__area__"

    result = []
    for position, (_, feature) in enumerate(features.iterrows()):
        try:
            result.append(normalize(feature, numerator, denominator, scale_factor))
        except ChoroplethError as err:
            raise err.at(position) from err
    return pd.Series(result, index=features.index, dtype=float)


def classify_features(features, column, scheme, k):
    """
    Classify the values of ``column`` into ``k`` classes.

    Missing values do not take part in computing the bins and get class
    index ``-1``.

    Returns
    -------
    ClassificationScheme
    """
    values = attribute_values(features, column)
    valid = values.notna().to_numpy()
    if not valid.any():
        raise InvalidInputError(f"attribute '{column}' has no values to classify")
    finite = np.isfinite(values.to_numpy()[valid])
    if not finite.all():
        position = int(np.flatnonzero(valid)[np.argmin(finite)])
        raise InvalidInputError(f"value of '{column}' is not finite").at(position)

    bins = classify(values[valid].to_numpy(), scheme, k)
    yb = np.full(len(values), -1, dtype=int)
    yb[valid] = [find_bin(v, bins) for v in values[valid]]
    return ClassificationScheme(_scheme_name(scheme), int(k), bins, yb)


def colorize_features(features, column, classification, palette, missing_color=None):
    """
    One color per feature for the values of ``column``.

    Returns
    -------
    pandas.Series
        Colors in the order of ``features``; features with a missing value
        get ``missing_color``.
    """
    values = attribute_values(features, column)
    palette = list(palette)
    colors = []
    for position, value in enumerate(values):
        if np.isnan(value):
            colors.append(missing_color)
            continue
        try:
            colors.append(colorize(value, classification.bins, palette))
        except ChoroplethError as err:
            raise err.at(position) from err
    return pd.Series(colors, index=features.index, dtype=object)


def choropleth(features, column, scheme, k, palette, missing_color=None):
    """
    Classify ``column`` and color every feature.

    Parameters
    ----------
    features : GeoDataFrame
    column : str
        Numeric column to map.
    scheme : str
        Classification scheme, see :func:`classify`.
    k : int
        Number of classes.
    palette : sequence of colors
        Ordered from the lowest to the highest class.
    missing_color : color, optional
        Color of features with a missing value.

    Returns
    -------
    ChoroplethResult
        ``values`` (float Series), ``classification``
        (:class:`ClassificationScheme`) and ``colors`` (Series of colors),
        all aligned with ``features``.
    """
    values = attribute_values(features, column)
    classification = classify_features(features, column, scheme, k)
    colors = colorize_features(
        features, column, classification, palette, missing_color=missing_color
    )
    return ChoroplethResult(values, classification, colors)
