"""Utility helpers for roomguard."""
