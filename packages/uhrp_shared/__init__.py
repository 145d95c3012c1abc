"""Shared runtime utilities for the UHRP storage host."""
