"""
LIL (Logos Intermediate Language)

Declarative audit rules evaluated against the protocol state:
- rules: pydantic models + YAML loader for the rule table
- engine: interpreter over the closed predicate set and the action registry
"""
