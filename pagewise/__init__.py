"""Page-by-page study analysis with incremental study history persistence."""
