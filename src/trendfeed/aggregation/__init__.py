"""Aggregation — freshness policy and multi-source feed merging."""
