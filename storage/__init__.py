"""
Document storage backends for the audit protocol state.

Redis when REDIS_URL is set and reachable, process memory otherwise.
"""
