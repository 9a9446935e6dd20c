"""Storefront API: catalog, cart, orders and role dashboards."""
__version__ = "1.0.0"
