"""iCafeCloud HTTP access."""
