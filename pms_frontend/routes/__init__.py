"""
Routes package for the PMS frontend.

This package contains route blueprints:
- views: HTML pages for projects, tasks, teams, and the user profile
- board: JSON endpoints for board drag-and-drop status moves
"""
