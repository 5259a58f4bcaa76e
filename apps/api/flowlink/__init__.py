"""FlowLink: cross-system ticket aggregation and record linking."""

__version__ = "0.1.0"
