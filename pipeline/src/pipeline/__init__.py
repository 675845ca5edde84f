"""Lunary batch pipeline."""
