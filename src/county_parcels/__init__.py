"""Package initializer for `county_parcels`."""

__version__ = "0.1.0"
