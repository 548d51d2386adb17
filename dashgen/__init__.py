"""dashgen - CRUD layer generator for annotated Go entity definitions."""

__version__ = "0.3.0"
GIT_COMMIT = "unknown"
BUILD_TIME = "unknown"
