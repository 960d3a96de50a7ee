"""Inspect host memory, CPU caches, network interfaces and NUMA topology from Linux sysfs and procfs."""

__version__ = "0.1.0"