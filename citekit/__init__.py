"""citekit: bibliographic records, citation key aggregation and rendering."""

__version__ = "0.1.0"
