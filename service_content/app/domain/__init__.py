"""
Domain helpers for the content gateway: request parsing, localisation and
webhook handling.
"""
