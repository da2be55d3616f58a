"""Made-to-order garment fulfillment: SKU matching and production request workflows."""

__version__ = "0.1.0"
