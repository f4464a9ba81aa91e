"""Configuration, persistence, errors, concurrency and observability."""
