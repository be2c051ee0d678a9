"""State/store layer.

This package is the single source of truth for how incoming data from the
broker, the simulator and local commands is merged into one deterministic
telemetry snapshot.
"""
