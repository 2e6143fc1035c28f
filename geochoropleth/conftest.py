import numpy as np
import pandas as pd

from shapely.geometry import MultiPolygon, box

import geopandas

import geochoropleth

import pytest


@pytest.fixture(autouse=True)
def add_geochoropleth(doctest_namespace):
    doctest_namespace["geochoropleth"] = geochoropleth


# Datasets used in our tests


@pytest.fixture
def neighborhoods():
    """Six 1 km x 2 km neighborhoods in UTM zone 18N with a population."""
    geoms = [box(i * 1000, 0, (i + 1) * 1000, 2000) for i in range(6)]
    df = geopandas.GeoDataFrame(
        {
            "name": ["a", "b", "c", "d", "e", "f"],
            "pop17": [5000, 1000, 12000, 300, 7000, 2000],
        },
        geometry=geoms,
        crs="EPSG:32618",
    )
    df["AREA"] = df.geometry.area
    return df


@pytest.fixture
def zip_codes():
    """Four ZIP code areas around lower Manhattan, in long/lat."""
    geoms = [
        box(-74.02 + i * 0.01, 40.70, -74.01 + i * 0.01, 40.71) for i in range(3)
    ]
    geoms.append(
        MultiPolygon(
            [box(-73.99, 40.70, -73.985, 40.71), box(-73.985, 40.705, -73.98, 40.71)]
        )
    )
    return geopandas.GeoDataFrame(
        {"zip": [10004, 10005, 10006, 10007]}, geometry=geoms, crs="EPSG:4326"
    )


@pytest.fixture
def case_rates():
    return pd.DataFrame(
        {
            "zip": ["10004", "10005", "10006", "10007"],
            "case_rate": [10.0, 20.0, 30.0, 100.0],
        }
    )


@pytest.fixture
def values_df():
    """Four unit squares with the values 10, 20, 30 and 100."""
    geoms = [box(i, 0, i + 1, 1) for i in range(4)]
    return geopandas.GeoDataFrame(
        {"value": [10, 20, 30, 100]}, geometry=geoms, crs="EPSG:32618"
    )


@pytest.fixture
def values_with_nan(values_df):
    df = values_df.copy()
    df["value"] = df["value"].astype(float)
    df.loc[2, "value"] = np.nan
    return df
