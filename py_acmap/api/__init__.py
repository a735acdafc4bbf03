"""
HTTP API for coordinate conversion, blend planning and map previews.
"""
