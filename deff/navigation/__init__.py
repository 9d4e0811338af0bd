"""Navigation state machine and the key bindings that drive it."""
