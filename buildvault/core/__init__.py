"""Core engine: integrity cache, dependency materializer and their helpers."""
