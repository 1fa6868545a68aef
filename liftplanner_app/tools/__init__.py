"""Toolbox plugins. Each subpackage exposes TOOL."""
