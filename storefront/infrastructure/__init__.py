"""Infrastructure layer - settings, database engine and logging setup."""
