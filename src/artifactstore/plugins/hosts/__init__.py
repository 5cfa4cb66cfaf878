"""Delivery host plugins."""
