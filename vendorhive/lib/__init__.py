"""
Shared infrastructure: settings, logging, JWT, password hashing, metrics, database.
"""
