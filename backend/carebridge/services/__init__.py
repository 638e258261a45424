"""
Services Layer

Business logic collaborators used by the route modules:
- Accept domain inputs (IDs, request models, the current context)
- Read and write through the SQLModel session they were built with
- Raise carebridge.errors exceptions instead of returning HTTP responses
"""
