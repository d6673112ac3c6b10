"""Core shipping pipeline: events, outbox, flusher and logger."""
