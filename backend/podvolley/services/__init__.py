"""
Services Layer

Tournament logic that:
- Accepts domain inputs (IDs, sessions, model rows)
- Returns domain outputs (models, dataclasses)
- Does NOT depend on HTTP request/response objects
- Leaves the final commit to the caller unless documented otherwise
"""
