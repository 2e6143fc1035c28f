from geochoropleth._config import options

from geochoropleth.errors import (
    ChoroplethError,
    DivisionError,
    InvalidInputError,
    MissingAttributeError,
)
from geochoropleth.mapper import (
    ChoroplethResult,
    ClassificationScheme,
    choropleth,
    classify,
    classify_features,
    colorize,
    colorize_features,
    normalize,
    normalize_features,
)
from geochoropleth.palettes import palette_from_cmap
from geochoropleth.io.file import read_attribute_table, read_boundary, read_features
from geochoropleth.tools import join_attributes, to_common_crs
from geochoropleth.plotting import add_scalebar, plot_boundary, plot_choropleth

__version__ = "0.1.0"
