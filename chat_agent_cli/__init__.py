"""Command line entry point for the chat agent tools."""
