"""Feed engine backend: configuration, content stores, and engine wiring."""
