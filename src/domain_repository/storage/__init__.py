"""Persistence backends for repositories."""
