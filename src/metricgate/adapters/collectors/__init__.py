"""Collector adapters implementing CollectorPort."""

from metricgate.adapters.collectors.http import HttpCollector

__all__ = ["HttpCollector"]
