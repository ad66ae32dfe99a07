"""Small persisted state kept next to the vector index."""
