"""
API Package.

FastAPI application and shared dependency providers.
"""
