"""spatial-memo — publish a geotagged record as a ledger memo and read it back."""

__version__ = "0.1.0"
