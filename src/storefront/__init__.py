"""storefront - cart, checkout and order lifecycle backend."""

__version__ = "0.1.0"
