"""
Services Layer

Business logic services that:
- Accept domain inputs (IDs, sessions, cache clients, models)
- Return (status_code, body) pairs ready for the routers
- Do NOT depend on HTTP request/response objects
"""
