"""Configuration, logging and command execution."""
