"""
HTTP API: middleware and routers
"""
