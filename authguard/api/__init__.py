"""HTTP host surface."""
