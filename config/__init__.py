"""
Configuration for netident.
"""
