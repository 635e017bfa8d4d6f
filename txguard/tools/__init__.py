"""Host-side command line tools."""
