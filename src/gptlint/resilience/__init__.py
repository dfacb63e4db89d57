"""Resilience primitives: error classification and in-flight dedup."""
