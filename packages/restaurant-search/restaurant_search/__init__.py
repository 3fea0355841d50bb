"""
Paginated restaurant search: request building, session state and update channels.
"""
