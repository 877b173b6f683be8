"""Storage layer shared by the API server and maintenance scripts."""
