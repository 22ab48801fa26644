"""Utility modules for DuqueBot."""
