import math
import warnings

import numpy as np
import pandas as pd

from pyproj import CRS

import geochoropleth
from geochoropleth import mapper
from geochoropleth.errors import InvalidInputError
from geochoropleth.palettes import palette_from_cmap, validate_palette
from geochoropleth.tools.crs import to_common_crs


def _import_pyplot():
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        raise ImportError(
            "The matplotlib package is required for plotting in geochoropleth. "
            "You can install it using 'conda install -c conda-forge matplotlib' or "
            "'pip install matplotlib'."
        )
    return plt


def _polygon_parts(geoms):
    """
    Split every geometry into its polygons.

    Returns the polygons and, for each of them, the position of the
    geometry it came from. Missing and empty geometries have no parts.
    """
    parts, owners = [], []
    for position, geom in enumerate(geoms):
        if geom is None or geom.is_empty:
            continue
        polygons = geom.geoms if geom.geom_type == "MultiPolygon" else [geom]
        for polygon in polygons:
            parts.append(polygon)
            owners.append(position)
    return parts, np.array(owners, dtype=int)


def _polygon_patch(polygon):
    from matplotlib.patches import PathPatch
    from matplotlib.path import Path

    rings = [polygon.exterior, *polygon.interiors]
    return PathPatch(
        Path.make_compound_path(*[Path(np.asarray(r.coords)[:, :2]) for r in rings])
    )


def _repeat_per_part(kwargs, owners):
    """Repeat per-geometry style values once for each polygon part, in place."""
    from matplotlib.colors import is_color_like

    for key, value in kwargs.items():
        if "color" in key and is_color_like(value):
            continue
        if isinstance(value, str) or not pd.api.types.is_list_like(value):
            continue
        kwargs[key] = [value[i] for i in owners]


def _add_polygons(ax, geoms, values=None, cmap=None, vmin=None, vmax=None, **kwargs):
    """
    Draw polygon geometries on ``ax`` as a single patch collection.

    ``values`` (one per geometry) are mapped through ``cmap``; otherwise
    colors come from the style keywords, which may also hold one entry per
    geometry.
    """
    from matplotlib.collections import PatchCollection

    parts, owners = _polygon_parts(geoms)
    _repeat_per_part(kwargs, owners)

    collection = PatchCollection([_polygon_patch(p) for p in parts], **kwargs)
    if values is not None:
        collection.set_array(np.asarray(values, dtype=float)[owners])
        collection.set_cmap(cmap)
        if "norm" not in kwargs:
            collection.set_clim(vmin, vmax)

    ax.add_collection(collection, autolim=True)
    ax.autoscale_view()
    return collection


def _set_aspect(ax, df, aspect):
    if aspect == "auto":
        if df.crs and df.crs.is_geographic and not df.empty:
            bounds = df.total_bounds
            y_coord = np.mean([bounds[1], bounds[3]])
            ax.set_aspect(1 / np.cos(y_coord * np.pi / 180))
            # formula ported from R package sp
            # https://github.com/edzer/sp/blob/master/R/mapasp.R
        else:
            ax.set_aspect("equal")
    elif aspect is not None:
        ax.set_aspect(aspect)


def _check_polygons(geoms):
    geom_types = geoms.geom_type
    invalid = np.asarray(
        geom_types.notna() & ~geom_types.isin(["Polygon", "MultiPolygon"])
    )
    if invalid.any():
        raise InvalidInputError(
            "Choropleth maps need Polygon or MultiPolygon geometries, got "
            f"{sorted(geom_types[invalid].unique())}",
            index=int(np.flatnonzero(invalid)[0]),
        )


def _default_fmt(edges):
    precision = geochoropleth.options.display_precision
    if precision is None:
        precision = 0 if all(float(e).is_integer() for e in edges) else 2
    return "{:.%df}" % precision


def legend_labels(classification, fmt=None, interval=False):
    """
    Legend labels for the classes of a classification.

    Parameters
    ----------
    classification : ClassificationScheme or list of (lower, upper)
    fmt : str, optional
        A format specification for the class bounds, for example
        ``"{:.0f}"``. Defaults to the ``display_precision`` option.
    interval : bool (default False)
        If True, open/closed interval brackets are shown, e.g.
        ``"[10, 55]"`` and ``"(55, 100]"``.

    Returns
    -------
    list of str
    """
    bins = getattr(classification, "bins", classification)
    if fmt is None:
        edges = [bins[0][0]] + [upper for _, upper in bins]
        fmt = _default_fmt(edges)

    labels = []
    for i, (lower, upper) in enumerate(bins):
        label = f"{fmt.format(lower)}, {fmt.format(upper)}"
        if interval:
            label = ("[" if i == 0 else "(") + label + "]"
        labels.append(label)
    return labels


def _metres_per_unit(ax, crs):
    if crs is None:
        raise InvalidInputError("A scale bar needs the CRS of the plotted data.")
    crs = CRS.from_user_input(crs)
    if crs.is_geographic:
        # length of a degree of longitude at the center of the view
        ymin, ymax = ax.get_ylim()
        latitude = np.clip(np.mean([ymin, ymax]), -89.0, 89.0)
        return 111_320.0 * np.cos(np.radians(latitude))
    if crs.axis_info:
        return crs.axis_info[0].unit_conversion_factor
    return 1.0


def _nice_length(x):
    if x <= 0:
        return 1.0
    exponent = math.floor(math.log10(x))
    for m in (5, 2, 1):
        candidate = m * 10**exponent
        if candidate <= x:
            return float(candidate)
    return float(10 ** (exponent - 1))


def add_scalebar(
    ax, crs, length=None, units="km", loc="lower left", color="black", fontsize=None
):
    """
    Add a scale bar to a map.

    Parameters
    ----------
    ax : matplotlib.axes.Axes
        Axes holding the map; its x-limits must already be set.
    crs : pyproj.CRS, str or int
        CRS of the plotted coordinates. For a geographic CRS the length of
        a degree of longitude at the center latitude is used.
    length : float, optional
        Length of the bar in ``units``. If None, a round length of about a
        fifth of the map width is chosen.
    units : {"km", "m"} (default "km")
    loc : str (default "lower left")
        Location of the bar, as for :func:`matplotlib.pyplot.legend`.
    color : color (default "black")
    fontsize : float, optional

    Returns
    -------
    mpl_toolkits.axes_grid1.anchored_artists.AnchoredSizeBar
    """
    from matplotlib.font_manager import FontProperties
    from mpl_toolkits.axes_grid1.anchored_artists import AnchoredSizeBar

    if units not in ("km", "m"):
        raise InvalidInputError(f"units must be 'km' or 'm', got '{units}'")
    unit_metres = 1000.0 if units == "km" else 1.0
    metres_per_unit = _metres_per_unit(ax, crs)

    if length is None:
        xmin, xmax = ax.get_xlim()
        width = abs(xmax - xmin) * metres_per_unit / unit_metres
        length = _nice_length(width / 5)
    elif length <= 0:
        raise InvalidInputError(f"length must be positive, got {length}")

    ymin, ymax = ax.get_ylim()
    bar = AnchoredSizeBar(
        ax.transData,
        length * unit_metres / metres_per_unit,
        f"{length:g} {units}",
        loc,
        pad=0.5,
        borderpad=0.5,
        sep=4,
        color=color,
        frameon=False,
        size_vertical=abs(ymax - ymin) / 200,
        fontproperties=FontProperties(size=fontsize) if fontsize else None,
    )
    ax.add_artist(bar)
    return bar


def plot_boundary(boundary, ax=None, figsize=None, aspect="auto", **style_kwds):
    """
    Plot administrative outlines, e.g. as a backdrop of a choropleth.

    Parameters
    ----------
    boundary : GeoDataFrame or GeoSeries
    ax : matplotlib.axes.Axes, optional
    figsize : pair of floats, optional
        Ignored if ``ax`` is given.
    aspect : 'auto', 'equal', None or float (default 'auto')
    **style_kwds
        Passed on to the polygon collection. Defaults to black outlines
        without fill.

    Returns
    -------
    ax : matplotlib axes instance
    """
    plt = _import_pyplot()
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    _set_aspect(ax, boundary, aspect)

    if boundary.empty:
        warnings.warn(
            "The boundary you are attempting to plot is "
            "empty. Nothing has been displayed.",
            UserWarning,
            stacklevel=2,
        )
        return ax

    geoms = boundary.geometry
    _check_polygons(geoms)
    style_kwds.setdefault("facecolor", "none")
    style_kwds.setdefault("edgecolor", "black")
    style_kwds.setdefault("linewidth", 1.0)
    style_kwds.setdefault("zorder", 2)
    _add_polygons(ax, geoms, **style_kwds)
    return ax


def _legend_handle(**kwds):
    from matplotlib.lines import Line2D

    return Line2D(
        [0],
        [0],
        linestyle="none",
        marker="s",
        markersize=10,
        **kwds,
    )


def plot_choropleth(
    features,
    column,
    scheme,
    k=5,
    cmap="viridis",
    palette=None,
    boundary=None,
    boundary_kwds=None,
    ax=None,
    figsize=None,
    aspect="auto",
    legend=True,
    legend_kwds=None,
    missing_kwds=None,
    title=None,
    scalebar=False,
    scalebar_kwds=None,
    **style_kwds,
):
    """
    Plot a choropleth map of a feature collection.

    Parameters
    ----------
    features : GeoDataFrame
        Polygon or MultiPolygon features.
    column : str
        Numeric column to map, e.g. a population density.
    scheme : str or None
        Classification scheme: ``"quantile"``, ``"equal-interval"`` or
        ``"natural-breaks"``. Must be given explicitly; pass None to map the
        values on a continuous colormap with a colorbar instead of classes.
    k : int (default 5)
        Number of classes (ignored if scheme is None).
    cmap : str or matplotlib.colors.Colormap (default "viridis")
        Colormap the class colors are sampled from.
    palette : sequence of colors, optional
        Explicit class colors from low to high; overrides ``cmap`` when a
        scheme is given.
    boundary : GeoDataFrame, optional
        Administrative outlines drawn over the features. Reprojected to the
        CRS of ``features`` if needed.
    boundary_kwds : dict, optional
        Style of the boundary, see :func:`plot_boundary`.
    ax : matplotlib.pyplot.Artist (default None)
        axes on which to draw the plot
    figsize : tuple of integers (default None)
        Size of the resulting matplotlib.figure.Figure. If the argument
        axes is given explicitly, figsize is ignored.
    aspect : 'auto', 'equal', None or float (default 'auto')
        Set aspect of axis. If 'auto', the default aspect for map plots is
        'equal'; if however data are not projected (coordinates are long/lat),
        the aspect is by default set to 1/cos(df_y * pi/180) with df_y the y
        coordinate of the middle of the GeoDataFrame.
    legend : bool (default True)
        Plot a legend (classes) or a colorbar (no scheme).
    legend_kwds : dict (default None)
        Keyword arguments to pass to :func:`matplotlib.pyplot.legend` or
        :func:`matplotlib.pyplot.colorbar`.
        Additional accepted keywords when `scheme` is specified:

        fmt : string
            A formatting specification for the bin edges of the classes in the
            legend. For example, to have no decimals: ``{"fmt": "{:.0f}"}``.
        labels : list-like
            A list of legend labels to override the auto-generated labels.
            Needs to have the same number of elements as the number of
            classes (`k`).
        interval : boolean (default False)
            If True, open/closed interval brackets are shown in the legend.
    missing_kwds : dict (default None)
        Style options for features with missing values, in addition to or
        overwriting other style kwds. If None, those features are not
        plotted.
    title : str, optional
        Title of the map.
    scalebar : bool (default False)
        Add a scale bar, see :func:`add_scalebar`.
    scalebar_kwds : dict, optional
        Keyword arguments for :func:`add_scalebar`.
    **style_kwds : dict
        Style options to be passed on to the polygon collection, such
        as ``edgecolor``, ``linewidth`` or ``alpha``.

    Returns
    -------
    ax : matplotlib axes instance
    """
    plt = _import_pyplot()

    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)

    _set_aspect(ax, features, aspect)

    # if legend_kwds set, copy so we don't update it in place
    legend_kwds = {} if legend_kwds is None else legend_kwds.copy()
    missing_kwds = None if missing_kwds is None else missing_kwds.copy()

    if title is not None:
        ax.set_title(title)

    if features.empty:
        warnings.warn(
            "The GeoDataFrame you are attempting to plot is "
            "empty. Nothing has been displayed.",
            UserWarning,
            stacklevel=2,
        )
        return ax

    values = mapper.attribute_values(features, column)
    _check_polygons(features.geometry)

    nan_idx = np.asarray(values.isna(), dtype=bool)
    if nan_idx.all():
        raise InvalidInputError(f"attribute '{column}' has no values to plot")
    geoms = features.geometry.reset_index(drop=True)

    if scheme is not None:
        if palette is not None:
            palette = validate_palette(palette)
        else:
            palette = palette_from_cmap(cmap, k)
        result = mapper.choropleth(features, column, scheme, k, palette)
        colors = result.colors.to_numpy()
        _add_polygons(
            ax,
            geoms[~nan_idx],
            facecolor=list(colors[~nan_idx]),
            **style_kwds,
        )
    else:
        vmin = style_kwds.pop("vmin", None)
        vmax = style_kwds.pop("vmax", None)
        mn = values[~nan_idx].min() if vmin is None else vmin
        mx = values[~nan_idx].max() if vmax is None else vmax
        _add_polygons(
            ax,
            geoms[~nan_idx],
            values.to_numpy()[~nan_idx],
            vmin=mn,
            vmax=mx,
            cmap=cmap,
            **style_kwds,
        )

    missing_data = bool(nan_idx.any())
    if missing_kwds is not None and missing_data:
        merged_kwds = style_kwds.copy()
        merged_kwds.update(missing_kwds)
        merged_kwds.pop("label", None)
        _add_polygons(ax, geoms[nan_idx], **merged_kwds)

    if boundary is not None:
        if features.crs is not None and boundary.crs is not None:
            (boundary,) = to_common_crs(boundary, crs=features.crs)
        plot_boundary(boundary, ax=ax, aspect=None, **(boundary_kwds or {}))

    if legend:
        if scheme is not None:
            classification = result.classification
            if "labels" in legend_kwds:
                labels = list(legend_kwds.pop("labels"))
                if len(labels) != classification.k:
                    raise InvalidInputError(
                        "Number of labels must match number of bins, "
                        f"received {len(labels)} labels for "
                        f"{classification.k} bins"
                    )
            else:
                labels = legend_labels(
                    classification,
                    fmt=legend_kwds.pop("fmt", None),
                    interval=legend_kwds.pop("interval", False),
                )
            handles = [
                _legend_handle(
                    markerfacecolor=color,
                    markeredgewidth=0,
                    alpha=style_kwds.get("alpha", 1),
                )
                for color in mapper.class_colors(classification.bins, palette)
            ]
            if missing_kwds is not None and missing_data:
                handles.append(
                    _legend_handle(
                        markerfacecolor=missing_kwds.get(
                            "facecolor", missing_kwds.get("color")
                        ),
                        markeredgecolor=missing_kwds.get("edgecolor"),
                        markeredgewidth=missing_kwds.get(
                            "linewidth", 1 if missing_kwds.get("edgecolor") else 0
                        ),
                        alpha=missing_kwds.get("alpha", 1),
                    )
                )
                labels.append(missing_kwds.get("label", "NaN"))
            legend_kwds.setdefault("numpoints", 1)
            legend_kwds.setdefault("loc", "best")
            ax.legend(handles, labels, **legend_kwds)
        else:
            from matplotlib import cm
            from matplotlib.colors import Normalize

            for key in ("fmt", "labels", "interval"):
                legend_kwds.pop(key, None)
            if "title" in legend_kwds:
                legend_kwds.setdefault("label", legend_kwds.pop("title"))
            norm = style_kwds.get("norm", None)
            if not norm:
                norm = Normalize(vmin=mn, vmax=mx)
            n_cmap = cm.ScalarMappable(norm=norm, cmap=cmap)
            n_cmap.set_array(np.array([]))
            legend_kwds.setdefault("ax", ax)
            ax.get_figure().colorbar(n_cmap, **legend_kwds)

    if scalebar:
        add_scalebar(ax, features.crs, **(scalebar_kwds or {}))

    ax.figure.canvas.draw_idle()
    return ax
