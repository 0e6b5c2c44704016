"""
Plan payload module.

Models for backend results and channel messages, parsers that build them
from raw payloads, and builders for run and apply request bodies.
"""
