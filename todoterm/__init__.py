"""
todoterm - keyboard-driven task lists in the terminal.

Architecture:
- models.py: Domain entities (lists, tasks, settings) and derived values
- storage/: Persistence gateway (protocol + file and database backends)
- tui/: Layout manager, controller state machine, textual host
- cli.py: Command-line entry point

Extensibility points:
1. New storage backends: Implement the StorageGateway protocol
2. New panels: Register a WindowID and style in tui/layout.py, tui/styles.py
3. New views: Add a ViewState and a handler in tui/controller.py
"""

__version__ = "2.0.0"
