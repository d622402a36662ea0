"""Infrastructure module.

Configuration and the backend service client.
"""
