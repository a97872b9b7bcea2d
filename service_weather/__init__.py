"""
Weather lookup service.
"""
