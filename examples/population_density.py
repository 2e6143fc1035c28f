"""
Population density of neighborhoods
-----------------------------------

This example maps the population density of neighborhoods. The shapefile
holds one polygon per neighborhood with its 2017 population (``pop17``) and
its area in square metres (``AREA``).

First we read the neighborhoods and reproject them to a projected CRS, so
areas and the scale bar are in metres.
"""
import matplotlib.pyplot as plt

import geochoropleth

neighborhoods = geochoropleth.read_features(
    "data/neighborhoods.shp", crs="EPSG:32618"
)

###############################################################################
# Deriving the density
# ====================
#
# Population per square kilometre is the population divided by the area in
# square kilometres.
neighborhoods["density"] = geochoropleth.normalize_features(
    neighborhoods, "pop17", "AREA", scale_factor=1_000_000
)

###############################################################################
# Classes
# =======
#
# The natural breaks (Jenks) classification groups similar densities.
classification = geochoropleth.classify_features(
    neighborhoods, "density", "natural-breaks", k=5
)
print(classification.bins)
print(classification.counts)

###############################################################################
# The map
# =======
#
# The city outline is drawn over the neighborhoods.
city = geochoropleth.read_boundary(
    "data/cities.shp", "NAME", ["Chicago"], crs=neighborhoods.crs
)
ax = geochoropleth.plot_choropleth(
    neighborhoods,
    "density",
    "natural-breaks",
    k=5,
    cmap="viridis",
    boundary=city,
    legend_kwds={"title": "People per km²", "fmt": "{:.0f}"},
    title="Population density, 2017",
    scalebar=True,
    edgecolor="white",
    linewidth=0.3,
    figsize=(8, 8),
)
ax.set_axis_off()
plt.savefig("population_density.png", dpi=100, bbox_inches="tight")
