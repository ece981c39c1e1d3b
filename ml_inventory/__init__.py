"""Inventory and sales backend integrated with the Mercado Livre marketplace."""
