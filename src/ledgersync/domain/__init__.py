"""Domain layer for ledgersync."""
