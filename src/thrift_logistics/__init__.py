"""Campus thrift marketplace logistics-and-payments core."""

__version__ = "0.1.0"
