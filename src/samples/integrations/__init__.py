"""Integration adapters for the organization service (Dataverse Web API).

Keep these modules small and testable:
- No console prompting or sample flow concerns
- Pure IO + request/response shapes
"""
