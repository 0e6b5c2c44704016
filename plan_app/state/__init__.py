"""
Plan state machine module.

Defines the plan state and action enums, the pure derivation of the next
action, the state store that owns state/action/active plan, and the plan
context holding accumulated run outputs.
"""
