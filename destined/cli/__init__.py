"""Destined command-line interface."""
