"""
Infrastructure adapters for the vector index and document stores
"""
