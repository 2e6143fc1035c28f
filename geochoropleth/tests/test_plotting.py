import numpy as np

from shapely.geometry import Point, box

import geopandas

import geochoropleth
from geochoropleth import InvalidInputError, MissingAttributeError
from geochoropleth.plotting import (
    add_scalebar,
    legend_labels,
    plot_boundary,
    plot_choropleth,
)

import pytest

matplotlib = pytest.importorskip("matplotlib")
matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
from matplotlib.colors import to_rgba_array  # noqa: E402
from mpl_toolkits.axes_grid1.anchored_artists import AnchoredSizeBar  # noqa: E402


@pytest.fixture(autouse=True)
def close_figures(request):
    yield
    plt.close("all")


def _check_colors(actual_colors, expected_colors, alpha=None):
    """
    Asserts that the members of `collection` match the `expected_colors`
    (in order)
    """
    actual = to_rgba_array(actual_colors)
    expected = to_rgba_array(expected_colors)
    if alpha is not None:
        expected[:, 3] = alpha
    assert len(actual) == len(expected)
    np.testing.assert_array_almost_equal(actual, expected)


def _legend_texts(ax):
    return [text.get_text() for text in ax.get_legend().get_texts()]


class TestChoroplethPlotting:
    def test_scheme_colors(self, values_df):
        ax = plot_choropleth(
            values_df, "value", "equal-interval", k=2, palette=["red", "blue"]
        )
        assert len(ax.collections) == 1
        _check_colors(
            ax.collections[0].get_facecolors(), ["red", "red", "red", "blue"]
        )

    def test_scheme_legend(self, values_df):
        ax = plot_choropleth(
            values_df, "value", "equal-interval", k=2, palette=["red", "blue"]
        )
        assert _legend_texts(ax) == ["10, 55", "55, 100"]
        handles = ax.get_legend().legend_handles
        _check_colors([h.get_markerfacecolor() for h in handles], ["red", "blue"])

    def test_cmap_palette(self, values_df):
        ax = plot_choropleth(values_df, "value", "quantile", k=4, cmap="OrRd")
        expected = geochoropleth.palette_from_cmap("OrRd", 4)
        _check_colors(ax.collections[0].get_facecolors(), expected)

    def test_legend_kwds(self, values_df):
        ax = plot_choropleth(
            values_df,
            "value",
            "equal-interval",
            k=2,
            legend_kwds={"fmt": "{:.1f}", "interval": True, "title": "Rate"},
        )
        assert _legend_texts(ax) == ["[10.0, 55.0]", "(55.0, 100.0]"]
        assert ax.get_legend().get_title().get_text() == "Rate"

    def test_legend_labels_override(self, values_df):
        ax = plot_choropleth(
            values_df,
            "value",
            "equal-interval",
            k=2,
            legend_kwds={"labels": ["low", "high"]},
        )
        assert _legend_texts(ax) == ["low", "high"]

        with pytest.raises(InvalidInputError, match="Number of labels"):
            plot_choropleth(
                values_df,
                "value",
                "equal-interval",
                k=2,
                legend_kwds={"labels": ["only one"]},
            )

    def test_legend_kwds_not_modified(self, values_df):
        legend_kwds = {"fmt": "{:.1f}"}
        plot_choropleth(
            values_df, "value", "equal-interval", k=2, legend_kwds=legend_kwds
        )
        assert legend_kwds == {"fmt": "{:.1f}"}

    def test_no_legend(self, values_df):
        ax = plot_choropleth(values_df, "value", "quantile", k=2, legend=False)
        assert ax.get_legend() is None

    def test_missing_values_omitted(self, values_with_nan):
        ax = plot_choropleth(
            values_with_nan, "value", "equal-interval", k=2, palette=["red", "blue"]
        )
        assert len(ax.collections) == 1
        _check_colors(ax.collections[0].get_facecolors(), ["red", "red", "blue"])

    def test_missing_kwds(self, values_with_nan):
        ax = plot_choropleth(
            values_with_nan,
            "value",
            "equal-interval",
            k=2,
            palette=["red", "blue"],
            missing_kwds={"facecolor": "lightgrey", "label": "No data"},
        )
        assert len(ax.collections) == 2
        _check_colors(ax.collections[1].get_facecolors(), ["lightgrey"])
        assert _legend_texts(ax) == ["10, 55", "55, 100", "No data"]

    def test_multipolygons(self, zip_codes, case_rates):
        df = geochoropleth.join_attributes(zip_codes, case_rates, on="zip")
        ax = plot_choropleth(
            df, "case_rate", "equal-interval", k=2, palette=["red", "blue"]
        )
        # the last ZIP code has two parts
        _check_colors(
            ax.collections[0].get_facecolors(),
            ["red", "red", "red", "blue", "blue"],
        )

    def test_multipolygons_per_feature_style(self, zip_codes, case_rates):
        df = geochoropleth.join_attributes(zip_codes, case_rates, on="zip")
        ax = plot_choropleth(
            df,
            "case_rate",
            None,
            edgecolor=["red", "green", "blue", "black"],
            linewidth=[1, 2, 3, 4],
        )
        collection = ax.collections[0]
        _check_colors(
            collection.get_edgecolors(), ["red", "green", "blue", "black", "black"]
        )
        np.testing.assert_array_equal(collection.get_linewidths(), [1, 2, 3, 4, 4])
        np.testing.assert_array_equal(
            collection.get_array(), [10.0, 20.0, 30.0, 100.0, 100.0]
        )

    def test_continuous(self, values_df):
        ax = plot_choropleth(
            values_df, "value", None, cmap="viridis", legend_kwds={"title": "Value"}
        )
        cmap = matplotlib.colormaps["viridis"]
        expected = cmap((np.array([10, 20, 30, 100]) - 10) / 90)
        _check_colors(ax.collections[0].get_facecolors(), expected)
        # colorbar
        assert len(ax.get_figure().axes) == 2
        assert ax.get_figure().axes[1].get_ylabel() == "Value"

    def test_continuous_vmin_vmax(self, values_df):
        ax = plot_choropleth(values_df, "value", None, vmin=0, vmax=200)
        assert ax.collections[0].get_clim() == (0, 200)

    def test_style_kwds(self, values_df):
        ax = plot_choropleth(
            values_df, "value", "quantile", k=2, edgecolor="black", linewidth=0.5
        )
        _check_colors(ax.collections[0].get_edgecolors(), ["black"] * 4)
        np.testing.assert_array_equal(ax.collections[0].get_linewidths(), [0.5])

    def test_title(self, values_df):
        ax = plot_choropleth(values_df, "value", "quantile", k=2, title="Density")
        assert ax.get_title() == "Density"

    def test_ax_and_figsize(self, values_df):
        ax = plot_choropleth(values_df, "value", "quantile", k=2, figsize=(1, 1))
        np.testing.assert_array_equal(ax.figure.get_size_inches(), (1, 1))

        fig, ax = plt.subplots()
        assert plot_choropleth(values_df, "value", "quantile", k=2, ax=ax) is ax

    def test_aspect(self, values_df, zip_codes):
        ax = plot_choropleth(values_df, "value", "quantile", k=2)
        assert ax.get_aspect() == 1.0

        zip_codes["n"] = [1, 2, 3, 4]
        ax = plot_choropleth(zip_codes, "n", "quantile", k=2)
        expected = 1 / np.cos(40.705 * np.pi / 180)
        assert ax.get_aspect() == pytest.approx(expected)

        ax = plot_choropleth(zip_codes, "n", "quantile", k=2, aspect=0.5)
        assert ax.get_aspect() == 0.5

    def test_boundary(self, values_df):
        boundary = geopandas.GeoDataFrame(
            {"name": ["city"]}, geometry=[box(0, 0, 4, 1)], crs="EPSG:32618"
        )
        ax = plot_choropleth(
            values_df,
            "value",
            "quantile",
            k=2,
            boundary=boundary,
            boundary_kwds={"edgecolor": "red"},
        )
        assert len(ax.collections) == 2
        _check_colors(ax.collections[1].get_edgecolors(), ["red"])
        assert len(ax.collections[1].get_facecolors()) == 0

    def test_boundary_reprojected(self, values_df):
        boundary = geopandas.GeoDataFrame(
            geometry=[box(0, 0, 4, 1)], crs="EPSG:32618"
        ).to_crs("EPSG:4326")
        ax = plot_choropleth(
            values_df, "value", "quantile", k=2, boundary=boundary
        )
        path = ax.collections[1].get_paths()[0]
        np.testing.assert_allclose(path.vertices.min(axis=0), [0, 0], atol=1e-3)
        np.testing.assert_allclose(path.vertices.max(axis=0), [4, 1], atol=1e-3)

    def test_scalebar(self, neighborhoods):
        ax = plot_choropleth(
            neighborhoods,
            "pop17",
            "natural-breaks",
            k=3,
            scalebar=True,
            scalebar_kwds={"length": 1},
        )
        bars = [a for a in ax.artists if isinstance(a, AnchoredSizeBar)]
        assert len(bars) == 1
        assert bars[0].txt_label.get_text() == "1 km"

    def test_empty(self, values_df):
        with pytest.warns(UserWarning, match="empty"):
            ax = plot_choropleth(values_df.iloc[:0], "value", "quantile", k=2)
        assert len(ax.collections) == 0

    def test_errors(self, values_df):
        with pytest.raises(MissingAttributeError):
            plot_choropleth(values_df, "nope", "quantile", k=2)

        values_df["empty"] = np.nan
        with pytest.raises(InvalidInputError, match="no values"):
            plot_choropleth(values_df, "empty", "quantile", k=2)

        with pytest.raises(InvalidInputError, match="Invalid scheme"):
            plot_choropleth(values_df, "value", "unknown", k=2)

        with pytest.raises(InvalidInputError, match="invalid colors"):
            plot_choropleth(values_df, "value", "quantile", k=2, palette=["x"])

    def test_non_polygon(self, values_df):
        values_df.loc[1, "geometry"] = Point(0, 0)
        with pytest.raises(InvalidInputError, match="Polygon") as excinfo:
            plot_choropleth(values_df, "value", "quantile", k=2)
        assert excinfo.value.index == 1


def test_legend_labels():
    bins = [(10.0, 55.0), (55.0, 100.0)]
    assert legend_labels(bins) == ["10, 55", "55, 100"]
    assert legend_labels(bins, interval=True) == ["[10, 55]", "(55, 100]"]
    assert legend_labels([(0.5, 1.25)]) == ["0.50, 1.25"]
    assert legend_labels(bins, fmt="{:.0f}%") == ["10%, 55%", "55%, 100%"]


def test_legend_labels_display_precision():
    geochoropleth.options.display_precision = 1
    try:
        assert legend_labels([(10.0, 55.0)]) == ["10.0, 55.0"]
    finally:
        geochoropleth.options.display_precision = None


def test_legend_labels_classification(values_df):
    classification = geochoropleth.classify_features(
        values_df, "value", "equal-interval", 2
    )
    assert legend_labels(classification) == ["10, 55", "55, 100"]


def test_plot_boundary():
    boundary = geopandas.GeoDataFrame(
        geometry=[box(0, 0, 1, 1), box(1, 0, 2, 1)], crs="EPSG:32618"
    )
    ax = plot_boundary(boundary)
    assert len(ax.collections) == 1
    _check_colors(ax.collections[0].get_edgecolors(), ["black"])
    assert len(ax.collections[0].get_facecolors()) == 0

    with pytest.warns(UserWarning, match="empty"):
        plot_boundary(boundary.iloc[:0])


class TestScalebar:
    def setup_method(self):
        self.fig, self.ax = plt.subplots()

    def _label(self, bar):
        return bar.txt_label.get_text()

    def test_projected_auto_length(self):
        self.ax.set_xlim(0, 10_000)
        self.ax.set_ylim(0, 10_000)
        bar = add_scalebar(self.ax, "EPSG:32618")
        assert self._label(bar) == "2 km"
        assert bar in self.ax.artists

    def test_geographic_auto_length(self):
        self.ax.set_xlim(0, 1)
        self.ax.set_ylim(-0.5, 0.5)
        bar = add_scalebar(self.ax, "EPSG:4326")
        assert self._label(bar) == "20 km"

    def test_metres(self):
        self.ax.set_xlim(0, 10_000)
        bar = add_scalebar(self.ax, "EPSG:32618", length=500, units="m")
        assert self._label(bar) == "500 m"

    def test_invalid(self):
        with pytest.raises(InvalidInputError):
            add_scalebar(self.ax, "EPSG:32618", units="miles")
        with pytest.raises(InvalidInputError):
            add_scalebar(self.ax, "EPSG:32618", length=-1)
        with pytest.raises(InvalidInputError):
            add_scalebar(self.ax, None)


def test_population_density_map(neighborhoods):
    neighborhoods["density"] = geochoropleth.normalize_features(
        neighborhoods, "pop17", "AREA", 1_000_000
    )
    ax = plot_choropleth(
        neighborhoods, "density", "quantile", k=3, cmap="YlOrRd", title="Density"
    )
    assert len(_legend_texts(ax)) == 3
    assert len(ax.collections[0].get_facecolors()) == 6
