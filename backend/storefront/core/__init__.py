"""
Core utilities: credentials, translation validation, errors and logging.
"""
