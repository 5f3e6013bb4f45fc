"""
Top-level package for record-desk.

This package exposes the record keeping core (store, derived views,
import/export adapters, interaction controller) and the app definitions
built on top of it. Most code should import from submodules such as:
    record_desk.services
    record_desk.views
    record_desk.controller
    record_desk.apps
"""

__all__: list[str] = []
