from .metrics import PublisherCounters, PublisherMetrics

__all__ = ["PublisherCounters", "PublisherMetrics"]
