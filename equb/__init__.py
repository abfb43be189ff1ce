"""Equb rotating-savings engine: slot allocation, payment-gated winner selection, round progression."""

__version__ = "0.1.0"
