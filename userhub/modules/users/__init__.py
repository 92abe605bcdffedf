"""
User Management Module

User lifecycle management with clear separation of concerns:
- domain: Domain models, status lifecycle and input records
- services: Business logic
- repositories: Data access
- api: REST API endpoints
"""
