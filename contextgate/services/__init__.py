"""
Service layer for user context tools.
"""
