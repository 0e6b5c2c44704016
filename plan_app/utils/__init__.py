"""
Utility functions module.

Date normalization for plan date ranges and the asyncio debounce helper used
to collapse bursts of run requests.
"""
