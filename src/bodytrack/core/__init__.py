"""Shared types, events and the frame fusion pipeline."""
