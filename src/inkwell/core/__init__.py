"""Core infrastructure: configuration, exceptions, events, utilities, CLI."""
