"""Builders translating NamespaceStore specs into remote API structures."""
