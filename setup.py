#!/usr/bin/env python3
"""Installation script."""

from setuptools import setup

# see pyproject.toml for static project metadata
setup(
    name="geochoropleth",  # need by GitHub dependency graph
)
