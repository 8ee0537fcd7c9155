"""Shared helpers for money, dates, caching, logging, and output sanitization."""
