"""Uploaded-file handling for Filechat.

This module decides what happens to each file a user sends with a message:

- PDFs, plain text, CSVs and images are uploaded to the provider's Files API
- Word and Excel documents are converted to text and inlined in the message
- anything else, or anything over 500MB, is rejected before any upload

Temporary copies of incoming files are deleted once they have been routed.
"""
