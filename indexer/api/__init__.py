"""
Operator REST API for the indexer.
"""
