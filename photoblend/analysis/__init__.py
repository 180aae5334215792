"""Photo analysis: region color statistics and lighting maps."""
