"""
schemas/ — Pydantic models for visitrank

Input records supplied by the admin console (site visits, projects,
associations, caretakers) and the ranking / reconciliation responses.
"""
