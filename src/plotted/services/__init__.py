"""Services for plotted."""
