"""
Services Layer

Pure business logic services that:
- Accept domain inputs (match keys, sessions, candidate lists)
- Return domain outputs (suggestions, conflicts, scores)
- Do NOT depend on HTTP request/response objects
- Never mutate stored data (the engine only proposes)
"""
