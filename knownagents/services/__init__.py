"""
Known Agents Middleware - Services Layer
========================================

What:  Outbound calls to the Known Agents API.

Service Inventory:
    - RobotsTxtFetcher: one-time robots.txt generation request at provisioning
    - VisitReporter:    background worker pool sending visit events
"""
