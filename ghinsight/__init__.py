"""ghinsight: GitHub activity analytics and unified search."""

__version__ = "0.1.0"
