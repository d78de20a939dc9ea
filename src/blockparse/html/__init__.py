"""HTML fragment facility and markup normalization."""
