"""Utility functions for the gym kernel."""
