"""Core domain: database, models, repositories, schemas and services."""
