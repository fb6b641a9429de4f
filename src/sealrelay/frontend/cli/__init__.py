"""Command-line interface for running and inspecting the relay flow."""
