"""Entity repositories, the outbox, and the sync engine."""
