"""Core types, protocols and errors shared by every layer."""
