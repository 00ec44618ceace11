"""chathub: real-time multi-room message hub."""
