"""Data models for plotted."""
