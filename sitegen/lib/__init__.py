"""Shared helpers: logging, hashing, JSON and concurrency."""
