"""Shared test support code (sample entities)."""
