"""
Monitoring of analysis output across runs.

This package provides:
- Cluster stability tracking between successive partitions
"""
