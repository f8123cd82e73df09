"""Small shared helpers used across movie_vault modules."""
