"""Singleton Rich Console instance for consistent output across the application."""

from rich.console import Console

console = Console()
