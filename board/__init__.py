"""Session-authenticated message board backend."""
