"""Checkout and order-confirmation service.

Reconciles payments made through a redirect-based hosted checkout or an
embedded widget into one authoritative outcome per checkout.
"""

__version__ = "0.1.0"
