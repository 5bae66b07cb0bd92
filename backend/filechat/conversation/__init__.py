"""Conversation turns: storage and the history sent to the provider."""
