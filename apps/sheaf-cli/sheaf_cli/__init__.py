"""Sheaf command line interface."""
