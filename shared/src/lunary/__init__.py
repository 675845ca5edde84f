"""Lunary shared package: config, database, models, schemas, cache services."""
