"""
Monitoring: Prometheus collectors for the cache layer.
"""
