"""
COVID-19 case rates by ZIP code
-------------------------------

The case rates come as a CSV table keyed by ZIP code, the ZIP code areas as
GeoJSON. We join both, then map the rates with quantile classes and an
unclassified colormap side by side.
"""
import matplotlib.pyplot as plt

import geochoropleth

zips = geochoropleth.read_features("data/zip_codes.geojson", crs="EPSG:4326")
rates = geochoropleth.read_attribute_table("data/case_rates.csv", dtype={"zip": str})
zips = geochoropleth.join_attributes(zips, rates, on="zip")

counties = geochoropleth.read_boundary(
    "data/counties.geojson", "NAME", ["New York", "Kings", "Queens"], crs=zips.crs
)

###############################################################################
# Classified and continuous maps
# ==============================
#
# ZIP codes without a reported rate are shown in light grey.
fig, (ax1, ax2) = plt.subplots(ncols=2, figsize=(12, 6))

geochoropleth.plot_choropleth(
    zips,
    "case_rate",
    "quantile",
    k=5,
    cmap="YlOrRd",
    boundary=counties,
    missing_kwds={"facecolor": "lightgrey", "label": "No data"},
    legend_kwds={"title": "Cases per 100,000", "loc": "upper left"},
    title="Quantiles",
    scalebar=True,
    ax=ax1,
)
geochoropleth.plot_choropleth(
    zips,
    "case_rate",
    None,
    cmap="YlOrRd",
    boundary=counties,
    legend_kwds={"title": "Cases per 100,000", "shrink": 0.7},
    title="Continuous",
    ax=ax2,
)
for ax in (ax1, ax2):
    ax.set_axis_off()
plt.savefig("covid_case_rates.png", dpi=100, bbox_inches="tight")
