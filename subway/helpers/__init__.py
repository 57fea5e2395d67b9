"""Pure helper functions with no database access."""
