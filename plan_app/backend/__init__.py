"""
Backend call module.

Contract for the plan backend and the tagged result wrapper that separates
superseded requests from genuine failures.
"""
