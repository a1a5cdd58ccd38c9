"""Typer command line for prnotify."""
