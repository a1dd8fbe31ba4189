"""Text generation backends, token budget, chunking and formatting transfer."""
