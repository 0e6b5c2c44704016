"""
Plan App - Plan Session Orchestrator

Coordinates the lifecycle of a plan: a computed diff of pending changes
between the desired and current state of an environment. Sequences run,
apply and cancel operations against a backend and reacts to progress
events streamed over a publish/subscribe channel.
"""

__version__ = "0.1.0"
__author__ = "Plan App Team"
