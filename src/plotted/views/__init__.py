"""Web views for plotted."""
