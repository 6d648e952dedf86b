"""
todoterm TUI - terminal user interface for the task manager.

Architecture:
- layout.py: Panels, geometry, focus ring and frame composition
- styles.py: Colours and border glyph sets
- state.py: View state, form buffers, status messages
- views.py: Snapshot-to-markup projections for each panel
- controller.py: Key dispatch state machine over the snapshot
- app.py: textual host (event loop, timers)
"""
