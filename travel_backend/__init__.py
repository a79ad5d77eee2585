"""
Backend package for the travel marketing site.

Provides a FastAPI application over a document store, with the public
catalog, the admin area, user stories and image uploads.
"""
