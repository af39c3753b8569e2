"""Clients for the collaborators of the NamespaceStore Operator."""
