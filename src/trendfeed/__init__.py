"""trendfeed — multi-source trending content aggregator."""
