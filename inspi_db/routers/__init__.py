"""
Admin API routers.
"""
