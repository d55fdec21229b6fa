"""Infrastructure: persistence, cache, security, and service implementations."""
