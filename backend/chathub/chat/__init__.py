"""Real-time multi-room chat hub."""
