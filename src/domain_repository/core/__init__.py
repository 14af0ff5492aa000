"""Core types shared across the repository layer: config, enums, errors, events."""
