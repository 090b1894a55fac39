"""
Domain services: policy checks and orchestration on top of the storage layer.
"""
