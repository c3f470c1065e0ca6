"""TasteTrail: palate-driven restaurant discovery session core."""

__version__ = "0.1.0"
