"""
DevDoc Backend — API Client Package
=====================================

What:  Async Python client for the DevDoc REST API plus the state
       containers a front end keeps around it.
How:   DevDocAPI wraps an httpx.AsyncClient; AuthStore and ProjectStore hold
       the session and project list and only change after a successful
       response; Preferences persists UI settings; Debouncer coalesces
       bursts of calls (notes autosave, search-as-you-type).
Who:   Scripts, CLIs and tests that drive a running DevDoc server.
"""

from app.client.api import ApiError, DevDocAPI
from app.client.debounce import Debouncer
from app.client.state import AuthStore, Notification, Preferences, ProjectStore

__all__ = [
    "ApiError",
    "AuthStore",
    "Debouncer",
    "DevDocAPI",
    "Notification",
    "Preferences",
    "ProjectStore",
]
