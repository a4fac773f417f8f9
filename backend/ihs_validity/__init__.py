"""
IHS validity analytics service.
"""
