"""Configuration, paths, safety checks and theming."""
