"""Source-map resolution for compiled test files."""
