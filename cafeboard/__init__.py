"""Cafe dashboard backend: member rankings and lookups over iCafeCloud."""
