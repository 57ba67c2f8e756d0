"""Warrant canary publishing server."""
