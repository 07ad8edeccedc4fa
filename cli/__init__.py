"""Command line tools for SimpleNet."""
