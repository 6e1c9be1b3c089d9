"""Use-case level logic.

These modules implement the sample helpers (version gate, solution import/delete,
error reporting) on top of an injected organization service.

They should be:
- deterministic given the service double
- unit-testable
- free of transport code
"""
