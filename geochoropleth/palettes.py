import numpy as np

from geochoropleth.errors import InvalidInputError


def palette_from_cmap(cmap, n):
    """
    Sample ``n`` colors evenly from a matplotlib colormap.

    Parameters
    ----------
    cmap : str or matplotlib.colors.Colormap
        Name of a colormap recognized by matplotlib, e.g. ``"viridis"`` or
        one of the ColorBrewer names such as ``"OrRd"`` and ``"YlGnBu"``.
    n : int
        Number of colors.

    Returns
    -------
    list of str
        Hex colors ordered from the low to the high end of the colormap.
    """
    import matplotlib
    from matplotlib.colors import Colormap, to_hex

    if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n < 1:
        raise InvalidInputError(f"n must be an integer >= 1, got {n!r}")

    if not isinstance(cmap, Colormap):
        try:
            cmap = matplotlib.colormaps[cmap]
        except (KeyError, TypeError):
            raise InvalidInputError(f"'{cmap}' is not a known matplotlib colormap")

    positions = np.linspace(0, 1, n) if n > 1 else [0.0]
    return [to_hex(cmap(pos)) for pos in positions]


def validate_palette(palette):
    """Return ``palette`` as a list, checking every entry is a color."""
    from matplotlib.colors import is_color_like

    if isinstance(palette, str):
        raise InvalidInputError("palette must be a sequence of colors, not a string")
    palette = list(palette)
    if not palette:
        raise InvalidInputError("palette must not be empty")
    invalid = [color for color in palette if not is_color_like(color)]
    if invalid:
        raise InvalidInputError(f"palette contains invalid colors: {invalid}")
    return palette
