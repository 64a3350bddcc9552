"""Tool handlers built on top of the session manager."""
