"""Lift Planner toolbox: load and route hazard evaluation tools."""

__version__ = "1.0.0"
