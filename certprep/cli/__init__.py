"""Terminal front end for the study session engine."""
