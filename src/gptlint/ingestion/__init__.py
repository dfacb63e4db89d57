"""Rule and source file resolution."""
