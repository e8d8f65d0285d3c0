"""
Application services: cached reads, search, interactions and broadcast.
"""
