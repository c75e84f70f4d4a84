"""
DevDoc Backend — API Routes Package
=====================================

Route Inventory:
    - auth.py:      /api/auth/register, /api/auth/login, /api/auth/me
    - projects.py:  /api/projects and everything nested under a project
    - uploads.py:   GET /uploads/{filename}
    - health.py:    GET /api/health

Routes stay thin: parse the request, call a service with the caller's id,
return the service's response model.
"""
