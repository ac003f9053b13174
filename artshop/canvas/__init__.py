"""Raster drawing primitives (stroke capture, undo/redo history, export).

Kept free of FastAPI and Redis concerns so the session, API routes and tests can share it.
"""
