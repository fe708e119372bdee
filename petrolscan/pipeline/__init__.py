"""Fuel price processing pipeline.

Classify, detect changes and persist scraped fuel price observations.
"""
