"""Engine settings and logging configuration."""
