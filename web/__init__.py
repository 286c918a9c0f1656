"""
JSON web API
"""
