"""HTTP surface: member, PC, cache and health routes."""
