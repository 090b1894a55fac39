"""
HTTP layer: FastAPI application, routes and middleware.
"""
