"""Core canoup functionality: configuration, mirror sync and the build pipeline."""
