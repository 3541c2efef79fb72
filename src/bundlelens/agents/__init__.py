"""Analysis agents for bundlelens."""
