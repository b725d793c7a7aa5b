"""
Couche infrastructure : persistance SQLite (SQLModel).
"""
