"""Voice journal service: record, store, transcribe and replay audio journal entries."""

__version__ = "0.1.0"
