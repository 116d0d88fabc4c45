"""
Storefront backend: document lifecycle hooks and cross-collection consistency.
"""
