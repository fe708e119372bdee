"""PetrolScan - fuel price crawler with classification and change detection."""

__version__ = "0.1.0"
