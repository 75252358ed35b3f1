"""codeloop: LLM-driven code mutation with transactional apply and log-based verification."""

__version__ = "0.1.0"
