"""
Event channel module.

Publish/subscribe contract, an in-process channel, and the adapter that
routes tests, report and backfill progress messages into a plan session.
"""
