"""
DevDoc Backend — Services Layer
=================================

Service Inventory:
    - AuthService:     registration, login, tokens, password hashes
    - ProjectService:  owner-scoped project, snippet, link and tag operations
    - FileService:     upload validation, storage and removal
    - search:          two-tier ranked/substring project search
    - ownership:       load_owned_project(), the shared ownership check
"""
