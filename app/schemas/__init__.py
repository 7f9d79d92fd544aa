"""
Schemas module - Request/Response schemas for API endpoints.

Every schema lives in app.schemas.schemas; JSON keys are camelCase.
"""
