"""AI enrichment — item summaries, topical tags, and recommendations."""
