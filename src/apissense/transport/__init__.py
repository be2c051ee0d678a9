"""Transport adapters: live broker and local simulator."""
