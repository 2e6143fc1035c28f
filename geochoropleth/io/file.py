import warnings

import pandas as pd

import geopandas

import geochoropleth
from geochoropleth.errors import InvalidInputError, MissingAttributeError
from geochoropleth.tools.crs import to_common_crs


def _check_engine(engine):
    # if not specified through keyword or option, let geopandas decide
    if engine is None:
        engine = geochoropleth.options.io_engine
    return engine


def read_features(filename, crs=None, columns=None, engine=None, **kwargs):
    """
    Read a feature collection from a shapefile, GeoJSON or any other vector
    file supported by geopandas.

    Parameters
    ----------
    filename : str or path object
        Path or URL of the file. Zipped shapefiles can be read with a
        ``zip://`` prefix.
    crs : pyproj.CRS, str or int, optional
        If given, the features are reprojected to this CRS, e.g.
        ``"EPSG:4326"``.
    columns : list of str, optional
        Only read these attribute columns.
    engine : str, "pyogrio" or "fiona"
        The underlying library used to read the file. Defaults to the
        ``geochoropleth.options.io_engine`` option.
    **kwargs
        Passed on to :func:`geopandas.read_file`.

    Returns
    -------
    GeoDataFrame

    Raises
    ------
    InvalidInputError
        If the file has no CRS.
    """
    engine = _check_engine(engine)
    if engine is not None:
        kwargs["engine"] = engine
    if columns is not None:
        kwargs["columns"] = columns

    features = geopandas.read_file(filename, **kwargs)
    if features.crs is None:
        raise InvalidInputError(
            f"'{filename}' has no CRS. Read it with geopandas and set one "
            "with `set_crs()` first."
        )
    if crs is not None:
        (features,) = to_common_crs(features, crs=crs)
    return features


def read_boundary(filename, column, identifiers, crs=None, engine=None, **kwargs):
    """
    Read administrative outlines and keep the ones listed in ``identifiers``.

    Parameters
    ----------
    filename : str or path object
    column : str
        Column holding the identifiers, e.g. a county name.
    identifiers : list-like
        Values of ``column`` to keep.
    crs : pyproj.CRS, str or int, optional
        Target CRS of the boundary, usually the CRS of the features it is
        drawn behind.
    engine : str, "pyogrio" or "fiona"
    **kwargs
        Passed on to :func:`geopandas.read_file`.

    Returns
    -------
    GeoDataFrame
    """
    if isinstance(identifiers, str):
        identifiers = [identifiers]
    identifiers = list(identifiers)
    if not identifiers:
        raise InvalidInputError("at least one identifier is required")

    boundary = read_features(filename, crs=crs, engine=engine, **kwargs)
    if column not in boundary.columns:
        raise MissingAttributeError(f"'{filename}' has no column '{column}'")

    boundary = boundary[boundary[column].isin(identifiers)]
    if boundary.empty:
        warnings.warn(
            f"None of the identifiers {identifiers} were found in column "
            f"'{column}'. The boundary is empty.",
            UserWarning,
            stacklevel=2,
        )
    return boundary


def read_attribute_table(filename, **kwargs):
    """
    Read a table of attributes, such as case rates per ZIP code.

    ``kwargs`` are passed on to :func:`pandas.read_csv`; use
    ``dtype={"zip": str}`` to keep leading zeros of codes.
    """
    return pd.read_csv(filename, **kwargs)
