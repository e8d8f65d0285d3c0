"""
Infrastructure adapters: Redis client and cache stores.
"""
