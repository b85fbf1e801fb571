"""Instance backends."""
