"""Lunary HTTP API."""
