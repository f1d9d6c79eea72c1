"""State-file writing and content digests."""
