"""
Known Agents Middleware - Host Routes
=====================================

What:  Downstream handlers shipped with the host application.

Route Inventory:
    - robots.py:  GET /robots.txt  (serves the `ka_robots_txt` request variable)
    - health.py:  GET /health      (module status)
"""
