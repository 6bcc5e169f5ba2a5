"""Shared helpers for plotted."""
