"""Core types shared by every stage: models, exceptions and settings."""
