"""Utility helpers for ccAnnounce."""
