"""
Known Agents Middleware - Pydantic Schemas
==========================================

What:  Pydantic models for the module configuration, the outbound request
       payloads and the health endpoint response.
"""
