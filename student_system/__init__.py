"""Student system backend."""
