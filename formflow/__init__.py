"""FormFlow: chat-style branching forms."""

__version__ = "1.0.0"
