"""Filechat: conversations with Claude over uploaded and generated files."""
