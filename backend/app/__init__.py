"""
DevDoc Backend — Application Package
======================================

Layered layout:

    ┌─────────────────────────────────────┐
    │   Routes + Auth Gate (API Layer)    │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │      Services (Business Logic)      │  ← ownership, validation, search
    ├─────────────────────────────────────┤
    │     Models & Schemas (Data)         │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │       Database (Persistence)        │  ← async SQLAlchemy sessions
    └─────────────────────────────────────┘

`app.client` sits outside these layers: it talks to the API over HTTP.
"""

__version__ = "1.0.0"
