"""Command-line entrypoint, composition root and slash commands."""
