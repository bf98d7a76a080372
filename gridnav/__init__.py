"""Occupancy-grid navigation: costmaps, frontier search and exploration, coverage planning, goal following and map merging."""

__version__ = "0.1.0"