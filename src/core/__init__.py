"""Core domain package for rollcall.

Core contains the dice evaluator, roll decomposition, simulations, and the
ingestion processor without any transcript-format or storage-specific code,
keeping the business logic portable.
"""
