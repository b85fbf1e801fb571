"""Environment aggregation, group actions and termination."""
