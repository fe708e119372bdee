"""Fuel name classification."""

from petrolscan.classification.classifier import FuelClassifier, classify

__all__ = ["FuelClassifier", "classify"]
