"""Exploratory dashboard over the SPD Crime Data: 2008-Present dataset."""

__version__ = "0.1.0"
