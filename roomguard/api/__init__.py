"""HTTP surface of the room guard (health probes only)."""
