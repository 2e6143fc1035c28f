from pyproj import CRS

from geochoropleth.errors import InvalidInputError


def is_projected(crs):
    """
    Whether ``crs`` is a projected CRS.

    Parameters
    ----------
    crs : pyproj.CRS, str or int
        Anything accepted by ``pyproj.CRS.from_user_input``.
    """
    if crs is None:
        return False
    return CRS.from_user_input(crs).is_projected


def to_common_crs(*collections, crs=None):
    """
    Reproject feature collections to a single CRS.

    Parameters
    ----------
    *collections : GeoDataFrame or GeoSeries
        The collections to reproject, e.g. the features and their boundary
        backdrop. Each must have a CRS set.
    crs : pyproj.CRS, str or int, optional
        Target CRS. Defaults to the CRS of the first collection.

    Returns
    -------
    list
        The reprojected collections, in input order. Collections already in
        the target CRS are returned unchanged.
    """
    if not collections:
        raise InvalidInputError("at least one collection is required")

    for position, collection in enumerate(collections):
        if collection.crs is None:
            raise InvalidInputError(
                "Cannot reproject a collection without a CRS. "
                "Set one with `set_crs()` first.",
                index=position,
            )

    target = CRS.from_user_input(crs) if crs is not None else collections[0].crs
    return [
        collection if collection.crs == target else collection.to_crs(target)
        for collection in collections
    ]
