"""Consumer worker: listeners por partición + drain en shutdown."""
